from enum import Enum
from pydantic import Field
from typing import Optional, List
from uuid import UUID

from storefront.schemas.base import CamelModel


class BucketType(str, Enum):
    PUBLIC = "PUBLIC"
    DOWNLOADS = "DOWNLOADS"
    LOGOS = "LOGOS"
    AVATARS = "AVATARS"
    TEMP = "TEMP"


class UploadRequest(CamelModel):
    file_data: Optional[str] = Field(None, description="Base64 payload or data: URL")
    file_name: Optional[str] = Field(None, description="Original file name")
    content_type: Optional[str] = Field(None, description="MIME type")
    bucket_type: Optional[BucketType] = Field(None, description="Logical bucket category")


class UploadResponse(CamelModel):
    success: bool = True
    path: str
    bucket: str
    is_private: bool
    url: Optional[str] = None


class ContentUploadRequest(CamelModel):
    file_base64: Optional[str] = Field(None, description="Base64 encoded file")
    file_name: Optional[str] = Field(None, description="Original file name")
    mime_type: Optional[str] = Field(None, description="MIME type")
    file_size: Optional[int] = Field(None, description="Size reported by the client, informational")


class ContentUploadResponse(CamelModel):
    success: bool = True
    path: str
    file_name: str
    size: int


class DeleteContentRequest(CamelModel):
    file_path: Optional[str] = None


class DeleteContentResponse(CamelModel):
    success: bool = True
    deleted: List[str]
    message: str


class DeleteProductRequest(CamelModel):
    product_id: Optional[UUID] = None
    tenant_id: Optional[str] = None


class DeleteProductResponse(CamelModel):
    success: bool = True
    message: str
    deletion_results: List[str]
