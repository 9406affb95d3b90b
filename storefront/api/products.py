from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
import logging

from storefront.db.database import get_db
from storefront.schemas.product import ProductWrite, ProductUpsert, ProductEnvelope, ProductListResponse
from storefront.services.product_service import ProductService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/products",
    tags=["Admin Products"]
)


def get_product_service(db: Session = Depends(get_db)) -> ProductService:
    """Dependency to get product service"""
    return ProductService(db)


@router.get(
    "",
    response_model=ProductListResponse,
    summary="List tenant products",
    description="""
    List the products of one tenant, newest first.

    **Filtering:**
    - `tenantId`: required
    - `isActive`: optional, `true`/`false`
    """,
    responses={
        200: {"description": "List of products"},
        400: {"description": "tenantId is missing"}
    }
)
async def list_products(
    tenant_id: Optional[str] = Query(None, alias="tenantId", description="Owning tenant"),
    is_active: Optional[bool] = Query(None, alias="isActive", description="Filter by active flag"),
    product_service: ProductService = Depends(get_product_service)
):
    """List products for a tenant"""
    products = product_service.list_products(tenant_id, is_active)
    return ProductListResponse(products=products)


@router.post(
    "",
    response_model=ProductEnvelope,
    status_code=status.HTTP_201_CREATED,
    summary="Create or update a product",
    description="""
    Create a product when `id` is omitted (201), otherwise update it (200).

    **Validation:**
    - `tenantId`, `name`, `contentPath`, `priceToken`, `priceAmountWei` are required
    - `priceAmountWei` must be a positive integer string (wei)
    - `stock` must be a non-negative integer unless `isUnlimited` is true

    **Concurrency:**
    Updates that send `updatedAt` are rejected with 409 `OPTIMISTIC_LOCK_CONFLICT`
    when the product changed since it was read.
    """,
    responses={
        200: {"description": "Product updated"},
        201: {"description": "Product created"},
        400: {"description": "Invalid product data"},
        403: {"description": "Product belongs to another tenant"},
        404: {"description": "Product not found"},
        409: {"description": "Product was modified concurrently"}
    }
)
async def upsert_product(
    product_data: ProductUpsert,
    response: Response,
    product_service: ProductService = Depends(get_product_service)
):
    """Create or update a product"""
    product, created = product_service.upsert_product(product_data.id, product_data)
    if not created:
        response.status_code = status.HTTP_200_OK
    return ProductEnvelope(product=product)


@router.put(
    "/{product_id}",
    response_model=ProductEnvelope,
    summary="Update a product",
    description="""
    Replace a product's fields. Send the last seen `updatedAt` to get
    optimistic locking; a stale value answers 409 and the client should reload.
    """,
    responses={
        200: {"description": "Product updated"},
        400: {"description": "Invalid product data"},
        403: {"description": "Product belongs to another tenant"},
        404: {"description": "Product not found"},
        409: {"description": "Product was modified concurrently"}
    }
)
async def update_product(
    product_id: UUID,
    product_data: ProductWrite,
    product_service: ProductService = Depends(get_product_service)
):
    """Update a product"""
    product = product_service.update_product(product_id, product_data)
    return ProductEnvelope(product=product)


@router.delete(
    "/{product_id}",
    response_model=ProductEnvelope,
    summary="Deactivate a product",
    description="""
    Soft delete: the product is hidden (`isActive=false`) but purchases and
    stored files are kept. Use `POST /api/delete/product` for a hard delete.
    """,
    responses={
        200: {"description": "Product deactivated"},
        400: {"description": "tenantId is missing"},
        403: {"description": "Product belongs to another tenant"},
        404: {"description": "Product not found"}
    }
)
async def delete_product(
    product_id: UUID,
    tenant_id: Optional[str] = Query(None, alias="tenantId", description="Owning tenant"),
    product_service: ProductService = Depends(get_product_service)
):
    """Deactivate a product"""
    product = product_service.deactivate_product(product_id, tenant_id)
    return ProductEnvelope(product=product, message="Product deactivated successfully")
