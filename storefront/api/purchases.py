from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
import logging

from storefront.config import Settings
from storefront.db.database import get_db
from storefront.schemas.purchase import PurchaseRequest, PurchaseTokenResponse, PurchaseSignedUrlResponse
from storefront.services import get_app_settings, get_chain_client, get_storage_provider
from storefront.services.chain_client import ChainClient
from storefront.services.purchase_service import PurchaseService
from storefront.services.storage_providers.base import StorageProvider

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/purchase",
    tags=["Purchases"]
)

PURCHASE_ERROR_RESPONSES = {
    400: {"description": "Invalid request, transaction not found or failed, or insufficient payment"},
    404: {"description": "Product not found or inactive"},
    409: {"description": "Sold out, or transaction already used for another product"},
    502: {"description": "Chain RPC or storage unavailable"}
}


def get_purchase_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    chain_client: ChainClient = Depends(get_chain_client),
    storage: StorageProvider = Depends(get_storage_provider)
) -> PurchaseService:
    """Dependency to get purchase service"""
    return PurchaseService(db, settings, chain_client, storage)


@router.post(
    "/init",
    response_model=PurchaseTokenResponse,
    summary="Record a purchase and issue a download token",
    description="""
    Verify the payment transaction on chain, reserve one unit of stock and
    record the purchase, then issue a single-use download token (24h).

    Re-submitting the same `txHash` is idempotent: the same purchase is
    returned with a usable token and stock is not decremented again.

    Redeem the token at `GET /api/download/{token}`.
    """,
    responses={200: {"description": "Purchase recorded"}, **PURCHASE_ERROR_RESPONSES}
)
async def purchase_init(
    request: PurchaseRequest,
    purchase_service: PurchaseService = Depends(get_purchase_service)
):
    """Token purchase flow"""
    return await purchase_service.purchase_with_token(request)


@router.post(
    "/complete",
    response_model=PurchaseSignedUrlResponse,
    summary="Record a purchase and return a signed download URL",
    description="""
    Same verification and recording as `/purchase/init`, but answers with a
    short-lived signed URL (10 minutes) to the product content directly.
    """,
    responses={200: {"description": "Purchase recorded"}, **PURCHASE_ERROR_RESPONSES}
)
async def purchase_complete(
    request: PurchaseRequest,
    purchase_service: PurchaseService = Depends(get_purchase_service)
):
    """Direct signed URL purchase flow"""
    return await purchase_service.purchase_with_signed_url(request)
