from sqlalchemy import Column, Text, Boolean, DateTime, ForeignKey, Index, Uuid
from sqlalchemy.orm import relationship
import uuid

from storefront.db.database import Base
from storefront.utils.dates import utcnow


class DownloadToken(Base):
    __tablename__ = "download_tokens"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    purchase_id = Column(Uuid, ForeignKey("purchases.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Uuid, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    token = Column(Text, nullable=False, unique=True)
    is_consumed = Column(Boolean, nullable=False, default=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    consumed_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (
        Index("idx_download_tokens_purchase", "purchase_id"),
    )

    purchase = relationship("Purchase", back_populates="download_tokens")
