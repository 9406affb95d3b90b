from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import List, Optional
from urllib.parse import urlparse
from uuid import UUID
import base64
import binascii
import logging
import re
import secrets
import string
import time

from storefront.config import Settings
from storefront.errors import ValidationError, PayloadTooLargeError, StorageError, StoreError
from storefront.models.product import Product
from storefront.schemas.files import BucketType
from storefront.services.product_service import ProductService
from storefront.services.storage_providers.base import StorageProvider
from storefront.services.storage_providers.buckets import bucket_name, is_public

logger = logging.getLogger(__name__)

UNSAFE_NAME_CHARS = re.compile(r"[^a-zA-Z0-9._-]")
_SUFFIX_ALPHABET = string.ascii_lowercase + string.digits


def random_suffix(length: int = 10) -> str:
    return "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(length))


def sanitize_file_name(file_name: str) -> str:
    return UNSAFE_NAME_CHARS.sub("_", file_name)


def generated_key(file_name: str) -> str:
    """``{epoch_ms}-{random}.{ext}``"""
    ext = file_name.rsplit(".", 1)[-1] if "." in file_name else "bin"
    return f"{int(time.time() * 1000)}-{random_suffix()}.{ext}"


def generated_content_key(file_name: str) -> str:
    """``{epoch_ms}_{random8}_{sanitized original name}``"""
    return f"{int(time.time() * 1000)}_{random_suffix(8)}_{sanitize_file_name(file_name)}"


def object_name_from_url(url: str) -> str:
    """Last path segment of a public URL, i.e. the object key of a flat bucket"""
    return urlparse(url).path.rstrip("/").split("/")[-1]


class FileService:
    """Uploads to and deletions from the storage buckets"""

    def __init__(self, db: Optional[Session], settings: Settings, storage: StorageProvider):
        self.db = db
        self.settings = settings
        self.storage = storage

    def _decode(self, payload: str) -> bytes:
        """Decode base64 (or a data: URL) after enforcing the size ceilings"""
        if "base64," in payload:
            payload = payload.split("base64,", 1)[1]

        if len(payload) > self.settings.max_upload_encoded_bytes:
            raise PayloadTooLargeError(
                f"File is too large (max {self.settings.max_upload_bytes // (1024 * 1024)} MB)"
            )

        try:
            data = base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError):
            raise ValidationError("File data is not valid base64")

        if len(data) > self.settings.max_upload_bytes:
            raise PayloadTooLargeError(
                f"File is too large (max {self.settings.max_upload_bytes // (1024 * 1024)} MB)"
            )
        return data

    def upload_file(
        self,
        file_data: Optional[str],
        file_name: Optional[str],
        content_type: Optional[str],
        bucket_type: Optional[BucketType]
    ) -> dict:
        """Upload into any bucket category; public URLs only for public categories"""
        if not file_data or not file_name or not bucket_type:
            raise ValidationError("fileData, fileName and bucketType are required")

        data = self._decode(file_data)
        bucket = bucket_name(self.settings, bucket_type)
        key = generated_key(file_name)

        logger.info(f"Uploading {file_name} ({len(data)} bytes) to {bucket}/{key}")
        path = self.storage.upload(bucket, key, data, content_type or "application/octet-stream")

        if not is_public(bucket_type):
            # Private objects are only ever reachable through signed URLs
            return {"success": True, "path": path, "bucket": bucket, "is_private": True}

        url = self.storage.get_public_url(bucket, path)
        return {"success": True, "url": url, "path": path, "bucket": bucket, "is_private": False}

    def upload_content(self, file_base64: Optional[str], file_name: Optional[str], mime_type: Optional[str]) -> dict:
        """Upload a distributable file into the private downloads bucket"""
        if not file_base64 or not file_name:
            raise ValidationError("fileBase64 and fileName are required")

        data = self._decode(file_base64)
        bucket = bucket_name(self.settings, BucketType.DOWNLOADS)
        key = generated_content_key(file_name)

        logger.info(f"Uploading content {file_name} ({len(data) / 1024 / 1024:.2f} MB) to {bucket}/{key}")
        path = self.storage.upload(bucket, key, data, mime_type or "application/octet-stream")

        return {"success": True, "path": path, "file_name": key, "size": len(data)}

    def delete_content(self, file_path: Optional[str]) -> dict:
        if not file_path:
            raise ValidationError("filePath is required")

        bucket = bucket_name(self.settings, BucketType.DOWNLOADS)
        logger.info(f"Deleting {file_path} from {bucket}")
        deleted = self.storage.remove(bucket, [file_path])

        return {"success": True, "deleted": deleted, "message": "File deleted"}

    def _remove_quietly(self, bucket: str, key: str, label: str, results: List[str]) -> None:
        """Remove one object, recording the outcome instead of raising"""
        try:
            self.storage.remove(bucket, [key])
            results.append(f"Deleted {label}")
        except StorageError as e:
            logger.warning(f"Failed to delete {label} {bucket}/{key}: {e}")
            results.append(f"Failed to delete {label}")

    def delete_product(self, product_id: Optional[UUID], tenant_id: Optional[str] = None) -> dict:
        """Hard delete a product and its stored files.

        File removal failures are collected in deletionResults and never block
        the database delete.
        """
        if not product_id:
            raise ValidationError("productId is required")

        product = ProductService(self.db).get_owned_product(product_id, tenant_id)
        logger.info(f"Deleting product {product_id} ({product.name})")

        results: List[str] = []
        if product.image_url:
            self._remove_quietly(
                bucket_name(self.settings, BucketType.PUBLIC),
                object_name_from_url(product.image_url),
                "thumbnail",
                results
            )
        if product.content_path:
            self._remove_quietly(
                bucket_name(self.settings, BucketType.DOWNLOADS),
                product.content_path,
                "content file",
                results
            )

        try:
            self.db.query(Product).filter(Product.id == product_id).delete(synchronize_session=False)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to delete product {product_id}: {e}", exc_info=True)
            raise StoreError("Failed to delete product", details=str(e))

        logger.info(f"Product {product_id} deleted: {results}")
        return {"success": True, "message": "Product and files deleted", "deletion_results": results}
