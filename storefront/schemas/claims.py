from pydantic import Field
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from storefront.schemas.base import CamelModel


class ClaimHistoryRequest(CamelModel):
    wallet_address: Optional[str] = Field(None, description="Wallet whose claims are listed")
    signature: Optional[str] = Field(None, description="personal_sign signature of message")
    message: Optional[str] = Field(None, description="Message that was signed")


class ClaimRecord(CamelModel):
    purchase_id: UUID
    product_id: Optional[UUID] = None
    product_name: str
    product_description: str
    product_image: str
    tx_hash: str
    amount_wei: str
    claimed_at: datetime
    status: str
    status_label: str
    chain_status: str
    has_valid_token: bool
    token_expires_at: Optional[datetime] = None
    download_url: Optional[str] = None


class ClaimHistoryResponse(CamelModel):
    success: bool = True
    wallet_address: str
    claims: List[ClaimRecord]
    total_claims: int
