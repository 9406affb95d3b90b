"""
Supabase Storage provider implementation (REST API, service role key)
"""
import requests
import logging
from typing import List, Optional
from urllib.parse import quote

from storefront.errors import StorageError
from storefront.services.storage_providers.base import StorageProvider

logger = logging.getLogger(__name__)


class SupabaseStorageProvider(StorageProvider):
    """Supabase Storage implementation of StorageProvider"""

    def __init__(self, supabase_url: Optional[str], service_role_key: Optional[str], timeout: float = 30):
        self.base_url = f"{supabase_url.rstrip('/')}/storage/v1" if supabase_url else None
        self.service_role_key = service_role_key
        self.timeout = timeout
        self.session = requests.Session()

        if not all([self.base_url, self.service_role_key]):
            logger.warning("Supabase Storage not fully configured (missing SUPABASE_URL or SUPABASE_SERVICE_ROLE_KEY)")

    def _headers(self, content_type: Optional[str] = None) -> dict:
        headers = {
            "Authorization": f"Bearer {self.service_role_key}",
            "apikey": self.service_role_key,
        }
        if content_type:
            headers["Content-Type"] = content_type
        return headers

    def _require_config(self):
        if not all([self.base_url, self.service_role_key]):
            raise StorageError("Supabase Storage is not configured")

    @staticmethod
    def _json_body(response: requests.Response, action: str):
        """Parsed body of a successful response, or StorageError when it is not JSON"""
        try:
            return response.json()
        except ValueError as e:
            logger.error(f"Supabase {action} returned a non-JSON body: {response.text[:200]}")
            raise StorageError(f"{action} failed: invalid response", details=str(e))

    @staticmethod
    def _error_detail(response: requests.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text
        if isinstance(body, dict):
            return body.get("message") or body.get("error") or str(body)
        return str(body)

    def upload(self, bucket: str, key: str, data: bytes, content_type: str) -> str:
        self._require_config()
        headers = self._headers(content_type or "application/octet-stream")
        headers["cache-control"] = "3600"
        headers["x-upsert"] = "false"

        try:
            response = self.session.post(
                f"{self.base_url}/object/{bucket}/{quote(key)}",
                headers=headers,
                data=data,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to upload {key} to {bucket}: {e}")
            raise StorageError("Upload failed", details=str(e))

        if response.status_code >= 400:
            detail = self._error_detail(response)
            logger.error(f"Supabase upload of {key} to {bucket} failed ({response.status_code}): {detail}")
            raise StorageError(f"Upload failed: {detail}", details=detail)

        logger.info(f"Uploaded {key} to bucket {bucket}")
        return key

    def get_public_url(self, bucket: str, path: str) -> str:
        self._require_config()
        return f"{self.base_url}/object/public/{bucket}/{quote(path)}"

    def create_signed_url(self, bucket: str, path: str, ttl_seconds: int) -> str:
        self._require_config()
        try:
            response = self.session.post(
                f"{self.base_url}/object/sign/{bucket}/{quote(path)}",
                headers=self._headers("application/json"),
                json={"expiresIn": ttl_seconds},
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to sign {path} in {bucket}: {e}")
            raise StorageError("Signed URL creation failed", details=str(e))

        if response.status_code >= 400:
            detail = self._error_detail(response)
            logger.error(f"Supabase sign of {path} in {bucket} failed ({response.status_code}): {detail}")
            raise StorageError(f"Signed URL creation failed: {detail}", details=detail)

        body = self._json_body(response, "Signed URL creation")
        signed_path = body.get("signedURL") if isinstance(body, dict) else None
        if not signed_path:
            raise StorageError("Signed URL creation failed: empty response")
        # Supabase returns a path relative to /storage/v1
        return f"{self.base_url}{signed_path}"

    def remove(self, bucket: str, keys: List[str]) -> List[str]:
        self._require_config()
        try:
            response = self.session.delete(
                f"{self.base_url}/object/{bucket}",
                headers=self._headers("application/json"),
                json={"prefixes": keys},
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Failed to remove {keys} from {bucket}: {e}")
            raise StorageError("Removal failed", details=str(e))

        if response.status_code >= 400:
            detail = self._error_detail(response)
            logger.error(f"Supabase removal from {bucket} failed ({response.status_code}): {detail}")
            raise StorageError(f"Removal failed: {detail}", details=detail)

        body = self._json_body(response, "Removal")
        if not isinstance(body, list):
            raise StorageError("Removal failed: invalid response", details=str(body))
        removed = [item.get("name") for item in body if isinstance(item, dict)]
        logger.info(f"Removed {removed} from bucket {bucket}")
        return removed
