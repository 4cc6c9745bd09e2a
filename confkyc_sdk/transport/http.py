"""
HTTP transport to a local wallet bridge.

The bridge runs next to a ledger node, indexer and proof server and exposes
balancing, finalization, submission and sub-wallet state as JSON endpoints.
Blocking requests run in worker threads so the event loop stays responsive.
"""
import asyncio
import logging
import urllib.parse
from datetime import datetime
from typing import Any, AsyncIterator, Dict, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .._rate_limited_log import rate_limited_log
from ..exceptions import (
    ConfigError, TransportConnectionError, TransportResponseError, TransportTimeoutError
)
from ..keys import Role, BalancingKeys
from ..ledger.codec import (
    transaction_to_dict, recipe_to_dict, recipe_from_dict, finalized_to_dict, finalized_from_dict
)
from ..ledger.types import Transaction, TransactionRecipe, FinalizedTransaction
from ..models import SubmitResult
from ..wallet.state import SubWalletState, state_from_dict
from .base import LedgerTransport

logger = logging.getLogger(__name__)


def validate_url(name: str, url: str) -> str:
    """
    Require https:// unless the host is local.

    Raises:
        ConfigError: If the URL uses another scheme on a remote host
    """
    parsed = urllib.parse.urlparse(url)
    host = parsed.hostname or ''
    is_local = host in ('localhost', '127.0.0.1')
    if parsed.scheme != 'https' and not (is_local and parsed.scheme == 'http'):
        raise ConfigError(f"{name} must use https:// for security (got: {parsed.scheme}://)")
    return url.rstrip('/')


class HttpTransport(LedgerTransport):
    """
    JSON-over-HTTP transport.

    Sub-wallet streams are polled every poll_interval seconds and yield a
    snapshot only when it differs from the previous one.
    """

    def __init__(
        self,
        bridge_url: str,
        retry_count: int = 3,
        timeout: int = 30,
        poll_interval: float = 2.0,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize the transport

        Args:
            bridge_url: Base URL of the wallet bridge (e.g., "http://localhost:9933")
            retry_count: Number of retries for HTTP requests
            timeout: Timeout for HTTP requests in seconds
            poll_interval: Delay between state polls in seconds
            logger: Optional logger instance

        Raises:
            ConfigError: If the URL does not use https (unless it's localhost/127.0.0.1)
        """
        self.bridge_url = validate_url("bridge_url", bridge_url)
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.logger = logger or logging.getLogger(__name__)

        self.session = requests.Session()
        retries = Retry(
            total=retry_count,
            backoff_factor=0.5,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["GET", "POST"],
            raise_on_status=False,
            connect=retry_count,
            read=retry_count,
            other=retry_count
        )
        self.session.mount("http://", HTTPAdapter(max_retries=retries))
        self.session.mount("https://", HTTPAdapter(max_retries=retries))

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        url = f"{self.bridge_url}{path}"
        try:
            response = self.session.request(method, url, json=payload, timeout=self.timeout)
        except requests.Timeout as e:
            self.logger.error(f"Request to {path} timed out: {e}")
            raise TransportTimeoutError(f"Request to {path} timed out after {self.timeout}s") from e
        except requests.ConnectionError as e:
            self.logger.error(f"Cannot reach wallet bridge at {self.bridge_url}: {e}")
            raise TransportConnectionError(f"Cannot reach wallet bridge: {e}") from e
        except requests.RequestException as e:
            self.logger.error(f"Request to {path} failed: {e}")
            raise TransportConnectionError(f"Request to {path} failed: {e}") from e

        if response.status_code >= 400:
            detail = response.text[:200]
            try:
                detail = response.json().get("error", detail)
            except ValueError:
                pass
            self.logger.error(f"Wallet bridge returned {response.status_code} for {path}: {detail}")
            raise TransportResponseError(
                f"Wallet bridge returned {response.status_code} for {path}: {detail}",
                status_code=response.status_code
            )

        content_type = response.headers.get('Content-Type', '')
        if 'application/json' not in content_type:
            self.logger.warning(f"Unexpected Content-Type: {content_type} (expected application/json)")
        try:
            return response.json()
        except ValueError as e:
            self.logger.error(f"Invalid JSON response from wallet bridge: {e}")
            raise TransportResponseError(
                f"Invalid JSON response from wallet bridge: {e}", status_code=response.status_code
            ) from e

    async def _call(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return await asyncio.to_thread(self._request, method, path, payload)

    async def balance(self, transaction: Transaction, keys: BalancingKeys, ttl: datetime) -> TransactionRecipe:
        data = await self._call("POST", "/balance", {
            "transaction": transaction_to_dict(transaction),
            "keys": {
                "confidential": keys.confidential.hex(),
                "resource": keys.resource.hex(),
            },
            "ttl": ttl.isoformat(),
        })
        if "recipe" not in data:
            raise TransportResponseError(f"Missing recipe in balance response: {sorted(data)}")
        return recipe_from_dict(data["recipe"])

    async def finalize(self, recipe: TransactionRecipe) -> FinalizedTransaction:
        data = await self._call("POST", "/finalize", {"recipe": recipe_to_dict(recipe)})
        if "finalized" not in data:
            raise TransportResponseError(f"Missing finalized transaction in response: {sorted(data)}")
        return finalized_from_dict(data["finalized"])

    async def submit(self, finalized: FinalizedTransaction) -> SubmitResult:
        data = await self._call("POST", "/submit", {"finalized": finalized_to_dict(finalized)})
        result = SubmitResult.model_validate(data)
        self.logger.info(f"Wallet bridge accepted transaction {result.transaction_id[:10]}…")
        return result

    async def state_stream(self, role: Role, credential: bytes) -> AsyncIterator[SubWalletState]:
        opened = await self._call("POST", "/wallets", {"role": int(role), "credential": credential.hex()})
        wallet_id = opened.get("walletId")
        if not wallet_id:
            raise TransportResponseError(f"Missing walletId in response: {sorted(opened)}")

        previous = None
        while True:
            data = await self._call("GET", f"/wallets/{wallet_id}/state")
            if data != previous:
                previous = data
                yield state_from_dict(data)
            else:
                rate_limited_log(
                    f"No state change for {role.name.lower()} wallet {wallet_id}",
                    level="debug", logger_instance=self.logger
                )
            await asyncio.sleep(self.poll_interval)

    async def close(self) -> None:
        self.session.close()
