from sqlalchemy import Column, String, Text, Integer, Boolean, DateTime, CheckConstraint, Index, Uuid
from sqlalchemy.orm import relationship
import uuid

from storefront.db.database import Base
from storefront.utils.dates import utcnow


class Product(Base):
    __tablename__ = "products"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    description = Column(Text)
    content_path = Column(Text, nullable=False)  # Key in the private downloads bucket
    image_url = Column(Text)  # Public URL of the thumbnail
    price_token = Column(String(32), nullable=False)
    price_amount_wei = Column(Text, nullable=False)  # Integer string, never a float
    stock = Column(Integer, nullable=False, default=0)
    is_unlimited = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    # Set in Python (microsecond precision) so optimistic locking can compare exactly
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("stock >= 0", name="stock_non_negative"),
        Index("idx_products_tenant_created", "tenant_id", "created_at"),
    )

    purchases = relationship("Purchase", back_populates="product", passive_deletes=True)
