from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
import logging

from storefront.config import Settings
from storefront.db.database import get_db
from storefront.schemas.files import (
    UploadRequest,
    UploadResponse,
    ContentUploadRequest,
    ContentUploadResponse,
    DeleteContentRequest,
    DeleteContentResponse,
    DeleteProductRequest,
    DeleteProductResponse,
)
from storefront.services import get_app_settings, get_storage_provider
from storefront.services.file_service import FileService
from storefront.services.storage_providers.base import StorageProvider

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Files"])


def get_file_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    storage: StorageProvider = Depends(get_storage_provider)
) -> FileService:
    """Dependency to get file service"""
    return FileService(db, settings, storage)


def get_storage_only_file_service(
    settings: Settings = Depends(get_app_settings),
    storage: StorageProvider = Depends(get_storage_provider)
) -> FileService:
    """File service for endpoints that never touch the database"""
    return FileService(None, settings, storage)


@router.post(
    "/admin/upload",
    response_model=UploadResponse,
    response_model_exclude_none=True,
    summary="Upload a file to a bucket",
    description="""
    Upload a base64 payload (or `data:` URL) to a logical bucket.

    **Buckets:**
    - PUBLIC, LOGOS, AVATARS: public, the response carries `url`
    - DOWNLOADS, TEMP: private, the response carries only `path`

    Payloads above the configured size ceiling are rejected with 413 before
    anything is sent to storage.
    """,
    responses={
        200: {"description": "File uploaded"},
        400: {"description": "Missing fields or invalid base64"},
        413: {"description": "File is too large"},
        502: {"description": "Storage rejected the upload"}
    }
)
async def upload_file(
    request: UploadRequest,
    file_service: FileService = Depends(get_storage_only_file_service)
):
    """Upload a file"""
    return file_service.upload_file(
        request.file_data,
        request.file_name,
        request.content_type,
        request.bucket_type
    )


@router.post(
    "/upload/content",
    response_model=ContentUploadResponse,
    status_code=status.HTTP_200_OK,
    summary="Upload distributable content",
    description="""
    Upload a product's downloadable file into the private downloads bucket.
    Store the returned `path` as the product's `contentPath`.
    """,
    responses={
        200: {"description": "Content uploaded"},
        400: {"description": "Missing fields or invalid base64"},
        413: {"description": "File is too large"},
        502: {"description": "Storage rejected the upload"}
    }
)
async def upload_content(
    request: ContentUploadRequest,
    file_service: FileService = Depends(get_storage_only_file_service)
):
    """Upload product content"""
    return file_service.upload_content(request.file_base64, request.file_name, request.mime_type)


@router.post(
    "/delete/content",
    response_model=DeleteContentResponse,
    summary="Delete a content file",
    responses={
        200: {"description": "File deleted"},
        400: {"description": "filePath is missing"},
        502: {"description": "Storage rejected the removal"}
    }
)
async def delete_content(
    request: DeleteContentRequest,
    file_service: FileService = Depends(get_storage_only_file_service)
):
    """Remove one path from the private downloads bucket"""
    return file_service.delete_content(request.file_path)


@router.post(
    "/delete/product",
    response_model=DeleteProductResponse,
    summary="Hard delete a product",
    description="""
    Delete a product row together with its thumbnail and content file.

    Storage removal failures are reported in `deletionResults` and do not
    prevent the database delete.
    """,
    responses={
        200: {"description": "Product deleted"},
        400: {"description": "productId is missing"},
        403: {"description": "Product belongs to another tenant"},
        404: {"description": "Product not found"}
    }
)
async def delete_product(
    request: DeleteProductRequest,
    file_service: FileService = Depends(get_file_service)
):
    """Delete a product and its files"""
    return file_service.delete_product(request.product_id, request.tenant_id)
