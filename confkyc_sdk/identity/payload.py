"""
Identity payloads for the KYC contract.

Personal data never leaves the wallet. Contract circuits receive only the
birth year, a hash of the country name and a random secret that binds the
commitment to its owner.
"""
import hashlib
import secrets
from datetime import datetime, timezone
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

# Minimum age accepted by the age eligibility proof
MIN_AGE = 18


def hash_country(country: str) -> bytes:
    """SHA-256 of the lower-cased, stripped country name."""
    return hashlib.sha256(country.strip().lower().encode("utf-8")).digest()


class IdentityPayload(BaseModel):
    """Identity witness handed to the contract layer."""
    model_config = ConfigDict(frozen=True)

    birth_year: int
    country_hash: bytes = Field(..., min_length=32, max_length=32)
    secret: bytes = Field(..., repr=False)


class PII(BaseModel):
    """Personal data of a KYC applicant, kept locally."""
    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field(..., alias="fullName", min_length=1)
    birth_year: int = Field(..., alias="birthYear", ge=1900, le=2100)
    country: str = Field(..., min_length=1)
    secret: str = Field(default_factory=lambda: secrets.token_hex(32), repr=False)

    @field_validator("secret")
    @classmethod
    def _secret_is_hex(cls, value: str) -> str:
        try:
            bytes.fromhex(value)
        except ValueError:
            raise ValueError("secret must be hex encoded")
        return value.lower()

    def to_identity_payload(self) -> IdentityPayload:
        return IdentityPayload(
            birth_year=self.birth_year,
            country_hash=hash_country(self.country),
            secret=bytes.fromhex(self.secret)
        )

    def age_eligibility_args(self, now: Optional[datetime] = None) -> Tuple[int, int, IdentityPayload]:
        """Arguments of the age eligibility circuit: current year, minimum age, identity."""
        now = now or datetime.now(timezone.utc)
        return now.year, MIN_AGE, self.to_identity_payload()

    def residency_args(self) -> Tuple[bytes, IdentityPayload]:
        """Arguments of the residency circuit: required country hash, identity."""
        return hash_country(self.country), self.to_identity_payload()
