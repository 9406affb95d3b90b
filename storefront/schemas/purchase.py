from pydantic import Field
from typing import Optional
from uuid import UUID

from storefront.schemas.base import CamelModel


class PurchaseRequest(CamelModel):
    product_id: Optional[UUID] = Field(None, description="Product being bought")
    tenant_id: Optional[str] = Field(None, description="Tenant scope for the product lookup")
    buyer: Optional[str] = Field(None, description="Buyer wallet address")
    tx_hash: Optional[str] = Field(None, description="Payment transaction hash")
    amount_wei: Optional[str] = Field(None, description="Amount the client claims to have paid")


class PurchaseTokenResponse(CamelModel):
    success: bool = True
    token: str
    purchase_id: UUID
    expires_at: int
    remaining_stock: Optional[int] = None


class PurchaseSignedUrlResponse(CamelModel):
    success: bool = True
    signed_url: str
    expires_at: int
    is_unlimited: bool
    remaining_stock: Optional[int] = None
