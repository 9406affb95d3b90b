from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import List, Optional
from uuid import UUID
import logging
import re

from storefront.errors import ValidationError, NotFoundError, ConflictError, TenantMismatchError, StoreError
from storefront.models.product import Product
from storefront.schemas.product import ProductWrite
from storefront.utils.dates import utcnow, as_utc

logger = logging.getLogger(__name__)

PRICE_PATTERN = re.compile(r"^\d+$")

REQUIRED_FIELDS = {
    "tenantId": "tenant_id",
    "name": "name",
    "contentPath": "content_path",
    "priceToken": "price_token",
    "priceAmountWei": "price_amount_wei",
}


class ProductService:
    """Service layer for tenant-scoped product administration"""

    def __init__(self, db: Session):
        self.db = db

    def _validate(self, data: ProductWrite) -> None:
        missing = [wire for wire, attr in REQUIRED_FIELDS.items() if not getattr(data, attr)]
        if missing:
            raise ValidationError(
                "Missing required fields",
                details={"required": list(REQUIRED_FIELDS), "missing": missing}
            )

        if not PRICE_PATTERN.match(data.price_amount_wei) or int(data.price_amount_wei) <= 0:
            raise ValidationError("priceAmountWei must be a positive integer string")

        if not data.is_unlimited and (data.stock is None or data.stock < 0):
            raise ValidationError("stock must be a non-negative number when isUnlimited is false")

    @staticmethod
    def _to_row(data: ProductWrite) -> dict:
        return {
            "tenant_id": data.tenant_id,
            "name": data.name,
            "description": data.description or None,
            "content_path": data.content_path,
            "image_url": data.image_url or None,
            "price_token": data.price_token,
            "price_amount_wei": data.price_amount_wei,
            "stock": 0 if data.is_unlimited else data.stock,  # stock is ignored when unlimited
            "is_unlimited": data.is_unlimited,
            "is_active": data.is_active if data.is_active is not None else True,
        }

    def _commit(self, action: str) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to {action}: {e}", exc_info=True)
            raise StoreError(f"Failed to {action}", details=str(e))

    def get_owned_product(self, product_id: UUID, tenant_id: Optional[str]) -> Product:
        """Load a product and re-check tenant ownership before any mutation"""
        product = self.db.query(Product).filter(Product.id == product_id).first()
        if not product:
            raise NotFoundError("Product not found")

        if tenant_id is not None and product.tenant_id != tenant_id:
            logger.warning(f"Tenant {tenant_id} attempted to modify product {product_id} owned by {product.tenant_id}")
            raise TenantMismatchError("Forbidden: tenant_id mismatch")

        return product

    def list_products(self, tenant_id: str, is_active: Optional[bool] = None) -> List[Product]:
        """List a tenant's products, newest first"""
        if not tenant_id:
            raise ValidationError("tenantId is required")

        logger.info(f"Fetching products for tenant: {tenant_id} (is_active={is_active})")
        query = self.db.query(Product).filter(Product.tenant_id == tenant_id)

        if is_active is not None:
            query = query.filter(Product.is_active.is_(is_active))

        products = query.order_by(Product.created_at.desc()).all()
        logger.info(f"Found {len(products)} products for tenant {tenant_id}")
        return products

    def create_product(self, data: ProductWrite) -> Product:
        """Create a new product"""
        self._validate(data)

        product = Product(**self._to_row(data))
        self.db.add(product)
        self._commit("create product")
        self.db.refresh(product)

        logger.info(f"Product created: {product.id} for tenant {product.tenant_id}")
        return product

    def update_product(self, product_id: UUID, data: ProductWrite) -> Product:
        """Update a product with optimistic concurrency on updated_at

        The write is a single conditional UPDATE; when it matches no row the
        product is re-read to tell a concurrent modification from a deletion.
        """
        self._validate(data)
        self.get_owned_product(product_id, data.tenant_id)

        values = self._to_row(data)
        values["updated_at"] = utcnow()

        query = self.db.query(Product).filter(Product.id == product_id)
        if data.updated_at is not None:
            query = query.filter(Product.updated_at == as_utc(data.updated_at))

        try:
            matched = query.update(values, synchronize_session=False)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to update product {product_id}: {e}", exc_info=True)
            raise StoreError("Failed to update product", details=str(e))

        if matched == 0:
            self.db.rollback()
            if not self.db.query(Product.id).filter(Product.id == product_id).first():
                raise NotFoundError("Product not found")
            logger.warning(f"Optimistic lock conflict on product {product_id}")
            raise ConflictError(
                "Conflict: The product has been modified by another user. Please reload and try again.",
                code="OPTIMISTIC_LOCK_CONFLICT"
            )

        self._commit("update product")
        logger.info(f"Product updated: {product_id}")
        return self.db.query(Product).filter(Product.id == product_id).first()

    def upsert_product(self, product_id: Optional[UUID], data: ProductWrite) -> tuple:
        """Create when no id is given, otherwise update. Returns (product, created)."""
        if product_id:
            return self.update_product(product_id, data), False
        return self.create_product(data), True

    def deactivate_product(self, product_id: UUID, tenant_id: str) -> Product:
        """Soft delete: clear the active flag"""
        if not tenant_id:
            raise ValidationError("tenantId is required")

        product = self.get_owned_product(product_id, tenant_id)
        product.is_active = False
        product.updated_at = utcnow()
        self._commit("delete product")
        self.db.refresh(product)

        logger.info(f"Product deactivated: {product_id}")
        return product
