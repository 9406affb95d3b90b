from sqlalchemy.orm import Session
from typing import Dict, List, Optional
from uuid import UUID
import asyncio
import logging

from storefront.config import Settings
from storefront.errors import ValidationError, ChainRPCError
from storefront.models.product import Product
from storefront.models.purchase import Purchase
from storefront.models.download_token import DownloadToken
from storefront.services.chain_client import ChainClient
from storefront.services.wallet_auth import normalize_address, verify_wallet_signature
from storefront.utils.dates import as_utc, is_expired, utcnow

logger = logging.getLogger(__name__)

STATUS_COMPLETED = "completed"
STATUS_EXPIRED = "expired"
STATUS_AVAILABLE = "available"
STATUS_PENDING = "pending"
STATUS_FAILED = "failed"

STATUS_LABELS = {
    STATUS_COMPLETED: "Received",
    STATUS_EXPIRED: "Expired",
    STATUS_AVAILABLE: "Ready to download",
    STATUS_PENDING: "Processing",
    STATUS_FAILED: "Transaction failed",
}

CHAIN_SUCCESS = "success"
CHAIN_FAILED = "failed"
CHAIN_UNKNOWN = "unknown"


def classify_claim(latest_token: Optional[DownloadToken], chain_status: str, now=None) -> str:
    """Display status of one purchase; a failed chain re-check overrides the token state"""
    if chain_status == CHAIN_FAILED:
        return STATUS_FAILED
    if latest_token is None:
        return STATUS_PENDING
    if latest_token.is_consumed:
        return STATUS_COMPLETED
    if is_expired(latest_token.expires_at, now):
        return STATUS_EXPIRED
    return STATUS_AVAILABLE


class ClaimService:
    """Aggregate a wallet's purchases with their products, tokens and a fresh chain check"""

    def __init__(self, db: Session, settings: Settings, chain_client: ChainClient):
        self.db = db
        self.settings = settings
        self.chain_client = chain_client

    async def _recheck(self, tx_hash: str) -> str:
        try:
            receipt = await self.chain_client.get_transaction_receipt(tx_hash)
        except ChainRPCError as e:
            logger.warning(f"Could not re-check transaction {tx_hash}: {e}")
            return CHAIN_UNKNOWN

        if receipt is None or not receipt.succeeded:
            logger.info(f"Transaction {tx_hash} no longer verifies on chain")
            return CHAIN_FAILED
        return CHAIN_SUCCESS

    def _latest_tokens(self, purchase_ids: List[UUID]) -> Dict[UUID, DownloadToken]:
        latest: Dict[UUID, DownloadToken] = {}
        if not purchase_ids:
            return latest

        tokens = self.db.query(DownloadToken).filter(
            DownloadToken.purchase_id.in_(purchase_ids)
        ).all()
        for token in tokens:
            current = latest.get(token.purchase_id)
            if current is None or as_utc(token.created_at) > as_utc(current.created_at):
                latest[token.purchase_id] = token
        return latest

    def _download_url(self, token: DownloadToken) -> str:
        return f"{self.settings.public_base_url.rstrip('/')}/api/download/{token.token}"

    async def get_claim_history(
        self,
        wallet_address: Optional[str],
        signature: Optional[str] = None,
        message: Optional[str] = None
    ) -> dict:
        if not wallet_address:
            raise ValidationError("walletAddress is required")

        address = normalize_address(wallet_address, "walletAddress")
        if signature and message:
            verify_wallet_signature(address, message, signature)

        logger.info(f"Fetching claim history for {address}")

        purchases = self.db.query(Purchase).filter(
            Purchase.buyer == address
        ).order_by(Purchase.created_at.desc()).all()

        if not purchases:
            logger.info(f"No claims for {address}")
            return {"success": True, "wallet_address": address, "claims": [], "total_claims": 0}

        product_ids = list({p.product_id for p in purchases if p.product_id is not None})
        products = {
            product.id: product
            for product in self.db.query(Product).filter(Product.id.in_(product_ids)).all()
        }
        tokens = self._latest_tokens([p.id for p in purchases])

        chain_statuses = await asyncio.gather(*(self._recheck(p.tx_hash) for p in purchases))

        now = utcnow()
        claims = []
        for purchase, chain_status in zip(purchases, chain_statuses):
            product = products.get(purchase.product_id)
            token = tokens.get(purchase.id)
            status = classify_claim(token, chain_status, now)
            valid_token = status == STATUS_AVAILABLE

            claims.append({
                "purchase_id": purchase.id,
                "product_id": purchase.product_id,
                "product_name": product.name if product else "Unknown",
                "product_description": (product.description or "") if product else "",
                "product_image": (product.image_url or "") if product else "",
                "tx_hash": purchase.tx_hash,
                "amount_wei": purchase.amount_wei,
                "claimed_at": purchase.created_at,
                "status": status,
                "status_label": STATUS_LABELS[status],
                "chain_status": chain_status,
                "has_valid_token": valid_token,
                "token_expires_at": token.expires_at if token else None,
                "download_url": self._download_url(token) if valid_token else None,
            })

        logger.info(f"Claim history for {address}: {len(claims)} claims")
        return {
            "success": True,
            "wallet_address": address,
            "claims": claims,
            "total_claims": len(claims),
        }
