from pydantic import Field
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from storefront.schemas.base import CamelModel


class ProductWrite(CamelModel):
    """Fields shared by create and update.

    Everything is optional at the schema level; required-field and price/stock
    rules are enforced by ProductService so the error lists every missing field.
    """
    tenant_id: Optional[str] = Field(None, description="Owning tenant", examples=["tenant-001"])
    name: Optional[str] = Field(None, description="Product name", examples=["Avatar GLB"])
    description: Optional[str] = Field(None, description="Product description")
    content_path: Optional[str] = Field(None, description="Key in the private downloads bucket")
    image_url: Optional[str] = Field(None, description="Public thumbnail URL")
    price_token: Optional[str] = Field(None, description="Token symbol", examples=["JPYC"])
    price_amount_wei: Optional[str] = Field(
        None,
        description="Price in wei as an integer string",
        examples=["1000000000000000000"]
    )
    stock: Optional[int] = Field(None, description="Units available (ignored when unlimited)")
    is_unlimited: bool = Field(False, description="Unlimited stock")
    is_active: Optional[bool] = Field(None, description="Visible in the storefront (default true)")
    updated_at: Optional[datetime] = Field(
        None,
        description="Last seen updatedAt; the update is rejected if the product changed since"
    )


class ProductUpsert(ProductWrite):
    id: Optional[UUID] = Field(None, description="Existing product id; omit to create")


class ProductResponse(CamelModel):
    id: UUID
    tenant_id: str
    name: str
    description: Optional[str] = None
    content_path: str
    image_url: Optional[str] = None
    price_token: str
    price_amount_wei: str
    stock: int
    is_unlimited: bool
    is_active: bool
    created_at: datetime
    updated_at: datetime


class ProductEnvelope(CamelModel):
    product: ProductResponse
    message: Optional[str] = None


class ProductListResponse(CamelModel):
    products: List[ProductResponse]
