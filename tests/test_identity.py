"""
Tests for identity payloads and the local identity stores.
"""
import base64
import json
import os
import stat
from datetime import datetime, timezone
from unittest.mock import patch

import keyring.errors
import pytest
from pydantic import ValidationError

from confkyc_sdk.exceptions import IdentityStoreError
from confkyc_sdk.identity import crypto
from confkyc_sdk.identity.crypto import encrypt_record, decrypt_record, get_master_key, clear_key_cache
from confkyc_sdk.identity.payload import PII, MIN_AGE, hash_country
from confkyc_sdk.identity.store import PIIStore, DeploymentStore

TEST_MASTER_KEY = b"0123456789abcdef0123456789abcdef"


@pytest.fixture(autouse=True)
def fresh_key_cache():
    clear_key_cache()
    yield
    clear_key_cache()


@pytest.fixture
def ci_key(monkeypatch):
    """Master key from the environment with an unavailable keyring"""
    monkeypatch.setenv("CI", "true")
    monkeypatch.setenv(crypto.MASTER_KEY_ENV, base64.b64encode(TEST_MASTER_KEY).decode("ascii"))
    with patch("keyring.get_password", side_effect=keyring.errors.KeyringError("no backend")):
        yield TEST_MASTER_KEY


@pytest.fixture
def pii():
    return PII(fullName="Ada Lovelace", birthYear=1990, country="  United Kingdom ", secret="AB" * 32)


class TestPayload:
    """Tests for PII and identity payloads."""

    def test_country_hash_is_normalized(self):
        assert hash_country("  United Kingdom ") == hash_country("united kingdom")
        assert len(hash_country("France")) == 32

    def test_identity_payload(self, pii):
        payload = pii.to_identity_payload()
        assert payload.birth_year == 1990
        assert payload.country_hash == hash_country("united kingdom")
        assert payload.secret == bytes.fromhex("ab" * 32)
        assert "secret" not in repr(payload)

    def test_circuit_arguments(self, pii):
        year, min_age, payload = pii.age_eligibility_args(now=datetime(2026, 3, 1, tzinfo=timezone.utc))
        assert (year, min_age) == (2026, MIN_AGE)
        required, residency_payload = pii.residency_args()
        assert required == payload.country_hash == residency_payload.country_hash

    def test_secret_defaults_to_random_hex(self):
        first = PII(full_name="A", birth_year=2000, country="Chile")
        second = PII(full_name="A", birth_year=2000, country="Chile")
        assert len(bytes.fromhex(first.secret)) == 32
        assert first.secret != second.secret

    @pytest.mark.parametrize("fields", [
        {"birthYear": 1850},
        {"secret": "not hex"},
        {"fullName": ""},
    ])
    def test_invalid_pii(self, fields):
        data = {"fullName": "Ada", "birthYear": 1990, "country": "UK"}
        data.update(fields)
        with pytest.raises(ValidationError):
            PII.model_validate(data)


class TestMasterKey:
    """Tests for master key handling."""

    def test_key_from_keyring(self, monkeypatch):
        monkeypatch.delenv("CI", raising=False)
        stored = base64.b64encode(TEST_MASTER_KEY).decode("ascii")
        with patch("keyring.get_password", return_value=stored) as get_password:
            assert get_master_key() == TEST_MASTER_KEY
            assert get_master_key() == TEST_MASTER_KEY
        get_password.assert_called_once_with(crypto.SERVICE_NAME, crypto.KEY_NAME)

    def test_key_from_environment_in_ci(self, ci_key):
        assert get_master_key() == ci_key

    def test_new_key_is_stored(self, monkeypatch):
        monkeypatch.delenv("CI", raising=False)
        with patch("keyring.get_password", return_value=None), \
                patch("keyring.set_password") as set_password:
            key = get_master_key()
        assert len(key) == 32
        set_password.assert_called_once()
        assert base64.b64decode(set_password.call_args[0][2]) == key

    def test_unstorable_key_outside_ci(self, monkeypatch):
        monkeypatch.delenv("CI", raising=False)
        with patch("keyring.get_password", return_value=None), \
                patch("keyring.set_password", side_effect=keyring.errors.PasswordSetError("locked")):
            with pytest.raises(IdentityStoreError):
                get_master_key()

    def test_wrong_key_length(self, monkeypatch):
        monkeypatch.delenv("CI", raising=False)
        with patch("keyring.get_password", return_value=base64.b64encode(b"short").decode("ascii")):
            with pytest.raises(IdentityStoreError):
                get_master_key()


class TestRecordEncryption:
    """Tests for encrypt_record and decrypt_record."""

    def test_encrypt_decrypt(self, ci_key):
        record = encrypt_record({"fullName": "Ada Lovelace"})
        assert record["version"] == 1
        assert "Ada Lovelace" not in record["encrypted"]
        assert decrypt_record(record) == {"fullName": "Ada Lovelace"}

    def test_tampered_record(self, ci_key):
        record = encrypt_record({"fullName": "Ada"})
        raw = bytearray(base64.b64decode(record["encrypted"]))
        raw[-1] ^= 0xFF
        with pytest.raises(IdentityStoreError):
            decrypt_record({"encrypted": base64.b64encode(bytes(raw)).decode("ascii")})

    def test_malformed_record(self, ci_key):
        with pytest.raises(IdentityStoreError):
            decrypt_record({"version": 1})


class TestStores:
    """Tests for PIIStore and DeploymentStore."""

    def test_pii_store(self, ci_key, tmp_path, pii):
        store = PIIStore(str(tmp_path / "store" / "pii.json"))
        store.save(pii)
        store.save(pii, label="second")

        loaded = store.load()
        assert loaded == pii
        assert store.labels() == ["default", "second"]
        assert store.load("missing") is None
        assert store.delete("second")
        assert not store.delete("second")
        assert store.labels() == ["default"]

        with open(tmp_path / "store" / "pii.json") as f:
            assert "Ada Lovelace" not in f.read()

    @pytest.mark.skipif(os.name != "posix", reason="POSIX permissions only")
    def test_store_permissions(self, ci_key, tmp_path):
        store = PIIStore(str(tmp_path / "store" / "pii.json"))
        assert stat.S_IMODE(os.stat(store.path).st_mode) == 0o600
        assert stat.S_IMODE(os.stat(store.path.parent).st_mode) == 0o700

    def test_corrupt_store(self, tmp_path):
        path = tmp_path / "pii.json"
        path.write_text("{not json")
        with pytest.raises(IdentityStoreError):
            PIIStore(str(path)).labels()

    def test_default_location(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CONFKYC_HOME", str(tmp_path / "home"))
        store = DeploymentStore()
        assert store.path == tmp_path / "home" / "deployment.json"

    def test_deployment_store(self, tmp_path):
        path = tmp_path / "deployment.json"
        store = DeploymentStore(str(path))
        store.save_contract_address("0200abcdef", network_id="preprod")

        assert DeploymentStore(str(path)).load_contract_address("preprod") == "0200abcdef"
        assert store.load_contract_address() is None
        with open(path) as f:
            assert json.load(f) == {"deployments": {"preprod": {"address": "0200abcdef"}}}
        with pytest.raises(ValueError):
            store.save_contract_address("")
