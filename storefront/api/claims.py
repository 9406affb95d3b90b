from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from storefront.config import Settings
from storefront.db.database import get_db
from storefront.schemas.claims import ClaimHistoryRequest, ClaimHistoryResponse
from storefront.services import get_app_settings, get_chain_client
from storefront.services.chain_client import ChainClient
from storefront.services.claim_service import ClaimService

router = APIRouter(
    prefix="/user",
    tags=["Claims"]
)


def get_claim_service(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
    chain_client: ChainClient = Depends(get_chain_client)
) -> ClaimService:
    """Dependency to get claim service"""
    return ClaimService(db, settings, chain_client)


@router.post(
    "/claim-history",
    response_model=ClaimHistoryResponse,
    summary="List a wallet's purchases",
    description="""
    Purchases of a wallet with their product, download status and a fresh
    on-chain check of the payment transaction.

    **Status:**
    - `completed`: token redeemed
    - `available`: token valid, `downloadUrl` is set
    - `expired`: token expired before redemption
    - `pending`: no token issued
    - `failed`: transaction no longer verifies on chain

    Send `signature` and `message` (personal_sign by the wallet) to prove
    control of the address.
    """,
    responses={
        200: {"description": "Claim history"},
        400: {"description": "walletAddress missing or invalid"},
        401: {"description": "Signature does not match the wallet"}
    }
)
async def claim_history(
    request: ClaimHistoryRequest,
    claim_service: ClaimService = Depends(get_claim_service)
):
    """Claim history for a wallet"""
    return await claim_service.get_claim_history(
        request.wallet_address,
        request.signature,
        request.message
    )
