from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
from uuid import UUID
import logging

from storefront.errors import StoreError
from storefront.models.product import Product

logger = logging.getLogger(__name__)


class StockService:
    """Store-side stock counter operations.

    Each operation is one conditional UPDATE so two concurrent buyers can never
    both take the last unit.
    """

    def __init__(self, db: Session):
        self.db = db

    def decrement(self, product_id: UUID) -> Optional[int]:
        """Take one unit. Returns the remaining stock, or None when sold out."""
        try:
            matched = self.db.query(Product).filter(
                Product.id == product_id,
                Product.is_unlimited.is_(False),
                Product.stock > 0
            ).update({Product.stock: Product.stock - 1}, synchronize_session=False)

            if matched == 0:
                self.db.rollback()
                return None

            remaining = self.db.query(Product.stock).filter(Product.id == product_id).scalar()
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Stock decrement failed for product {product_id}: {e}", exc_info=True)
            raise StoreError("Failed to reserve stock", details=str(e))

        logger.info(f"Stock reserved for product {product_id}, remaining: {remaining}")
        return remaining

    def restore(self, product_id: UUID) -> bool:
        """Best-effort return of one unit after a failed purchase insert"""
        try:
            self.db.query(Product).filter(
                Product.id == product_id,
                Product.is_unlimited.is_(False)
            ).update({Product.stock: Product.stock + 1}, synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning(f"Stock rollback failed for product {product_id}: {e}")
            return False

        logger.info(f"Stock rolled back for product {product_id}")
        return True
