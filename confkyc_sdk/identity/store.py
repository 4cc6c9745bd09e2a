"""
Local stores for identity records and contract deployments.

Both stores are JSON files guarded by a lock file, so several processes can
share them.
"""
import json
import logging
import os
import stat
from pathlib import Path
from typing import Any, Dict, List, Optional

import portalocker

from ..exceptions import IdentityStoreError
from .crypto import encrypt_record, decrypt_record
from .payload import PII

logger = logging.getLogger(__name__)

HOME_ENV = "CONFKYC_HOME"


def default_home() -> Path:
    return Path(os.environ.get(HOME_ENV, os.path.expanduser("~/.confkyc")))


class _JsonStore:
    """Process-safe JSON document with a single top-level section."""

    section = "records"

    def __init__(self, path: Path):
        self.path = Path(path)
        self._ensure_file()

    def _ensure_file(self) -> None:
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)
        if os.name == 'posix':
            os.chmod(directory, stat.S_IRUSR | stat.S_IWUSR | stat.S_IXUSR)  # 0700

        if not self.path.exists():
            with portalocker.Lock(self._lock_path(), timeout=10):
                with open(self.path, 'w') as f:
                    json.dump({self.section: {}}, f)
        if os.name == 'posix':
            os.chmod(self.path, stat.S_IRUSR | stat.S_IWUSR)  # 0600

    def _lock_path(self) -> str:
        return str(self.path) + '.lock'

    def read(self) -> Dict[str, Any]:
        with portalocker.Lock(self._lock_path(), timeout=10):
            try:
                with open(self.path, 'r') as f:
                    data = json.load(f)
            except FileNotFoundError:
                return {self.section: {}}
            except json.JSONDecodeError as e:
                raise IdentityStoreError(f"Store {self.path} is corrupt: {e}") from e
        data.setdefault(self.section, {})
        return data

    def write(self, data: Dict[str, Any]) -> None:
        with portalocker.Lock(self._lock_path(), timeout=10):
            with open(self.path, 'w') as f:
                json.dump(data, f, indent=2)

    def _put(self, key: str, value: Any) -> None:
        data = self.read()
        data[self.section][key] = value
        self.write(data)

    def _get(self, key: str) -> Optional[Any]:
        return self.read()[self.section].get(key)

    def _delete(self, key: str) -> bool:
        data = self.read()
        if key not in data[self.section]:
            return False
        del data[self.section][key]
        self.write(data)
        return True


class PIIStore(_JsonStore):
    """Encrypted store of applicants' personal data."""

    section = "identities"

    def __init__(self, path: Optional[str] = None):
        super().__init__(Path(path) if path else default_home() / "pii.json")

    def save(self, pii: PII, label: str = "default") -> None:
        self._put(label, encrypt_record(pii.model_dump(by_alias=True)))
        logger.info(f"Saved identity record '{label}'")

    def load(self, label: str = "default") -> Optional[PII]:
        """
        Load a record, or None if there is none under label.

        Raises:
            IdentityStoreError: If the record cannot be decrypted
        """
        record = self._get(label)
        if record is None:
            return None
        return PII.model_validate(decrypt_record(record))

    def labels(self) -> List[str]:
        return sorted(self.read()[self.section])

    def delete(self, label: str = "default") -> bool:
        return self._delete(label)


class DeploymentStore(_JsonStore):
    """Addresses of deployed KYC contracts, per network."""

    section = "deployments"

    def __init__(self, path: Optional[str] = None):
        super().__init__(Path(path) if path else default_home() / "deployment.json")

    def save_contract_address(self, address: str, network_id: str = "undeployed") -> None:
        if not address:
            raise ValueError("Contract address must not be empty")
        self._put(network_id, {"address": address})
        logger.info(f"Saved contract address {address[:10]}… for {network_id}")

    def load_contract_address(self, network_id: str = "undeployed") -> Optional[str]:
        entry = self._get(network_id)
        return entry["address"] if entry else None
