"""
Data models for the confkyc SDK.
"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from .ledger.types import Output, PRIMARY_TOKEN


class TransferOutput(BaseModel):
    """One recipient of a transfer"""
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    receiver_address: str = Field(..., alias="receiverAddress", min_length=1)
    amount: int = Field(..., gt=0)
    token_type: str = Field(PRIMARY_TOKEN, alias="type")

    def to_output(self) -> Output:
        return Output(value=self.amount, owner=self.receiver_address, token_type=self.token_type)


class FundingTarget(TransferOutput):
    """Recipient of a bootstrap funding transfer (non-production networks only)"""
    pass


class SubmitResult(BaseModel):
    """Result of submitting a finalized transaction"""
    model_config = ConfigDict(populate_by_name=True)

    transaction_id: str = Field(..., alias="transactionId")
    submitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), alias="submittedAt")
    status: str = "submitted"
    error: Optional[str] = None
