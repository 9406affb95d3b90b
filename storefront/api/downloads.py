from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session
import logging

from storefront.config import Settings
from storefront.db.database import get_db
from storefront.services import get_app_settings, get_storage_provider
from storefront.services.download_service import DownloadService
from storefront.services.storage_providers.base import StorageProvider

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/download",
    tags=["Downloads"]
)


def get_download_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    storage: StorageProvider = Depends(get_storage_provider)
) -> DownloadService:
    """Dependency to get download service"""
    return DownloadService(db, settings, storage)


@router.get(
    "/{token}",
    status_code=status.HTTP_302_FOUND,
    response_class=RedirectResponse,
    summary="Redeem a download token",
    description="""
    Consume a download token and redirect to a signed URL of the product
    content. Each token works once.
    """,
    responses={
        302: {"description": "Redirect to the signed content URL"},
        404: {"description": "Unknown token (TOKEN_NOT_FOUND)"},
        409: {"description": "Token already used (TOKEN_ALREADY_USED)"},
        410: {"description": "Token expired (TOKEN_EXPIRED)"}
    }
)
async def download(
    token: str,
    download_service: DownloadService = Depends(get_download_service)
):
    """Redeem a token"""
    signed_url = download_service.redeem(token)
    return RedirectResponse(url=signed_url, status_code=status.HTTP_302_FOUND)
