from sqlalchemy.orm import Session
import logging

from storefront.config import Settings
from storefront.errors import ValidationError, NotFoundError
from storefront.models.product import Product
from storefront.schemas.files import BucketType
from storefront.services.storage_providers.base import StorageProvider
from storefront.services.storage_providers.buckets import bucket_name
from storefront.services.token_service import TokenService

logger = logging.getLogger(__name__)


class DownloadService:
    """Redeem a download token for a short-lived signed URL to the private content"""

    def __init__(self, db: Session, settings: Settings, storage: StorageProvider):
        self.db = db
        self.settings = settings
        self.storage = storage
        self.tokens = TokenService(db)

    def redeem(self, token: str) -> str:
        if not token:
            raise ValidationError("Token is invalid")

        download_token = self.tokens.consume_token(token)
        logger.info(f"Download token consumed for purchase {download_token.purchase_id}")

        content_path = self.db.query(Product.content_path).filter(
            Product.id == download_token.product_id
        ).scalar()
        if not content_path:
            raise NotFoundError("Product not found")

        signed_url = self.storage.create_signed_url(
            bucket_name(self.settings, BucketType.DOWNLOADS),
            content_path,
            self.settings.download_url_ttl_seconds
        )
        logger.info(f"Signed download URL issued for product {download_token.product_id}")
        return signed_url
