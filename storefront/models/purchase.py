from sqlalchemy import Column, Text, DateTime, ForeignKey, Index, Uuid
from sqlalchemy.orm import relationship
import uuid

from storefront.db.database import Base
from storefront.utils.dates import utcnow


class Purchase(Base):
    """One row per verified on-chain payment; tx_hash is the idempotency key"""
    __tablename__ = "purchases"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    # Purchases outlive a hard-deleted product
    product_id = Column(Uuid, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    buyer = Column(Text, nullable=False)  # EIP-55 checksummed address
    tx_hash = Column(Text, nullable=False, unique=True)
    amount_wei = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_purchases_buyer_created", "buyer", "created_at"),
    )

    product = relationship("Product", back_populates="purchases")
    download_tokens = relationship("DownloadToken", back_populates="purchase", passive_deletes=True)
