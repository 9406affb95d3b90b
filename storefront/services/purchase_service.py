from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from dataclasses import dataclass
from typing import Optional, Tuple
from uuid import UUID
import logging
import re

from storefront.config import Settings
from storefront.errors import ValidationError, NotFoundError, ConflictError, SoldOutError, StoreError
from storefront.models.product import Product
from storefront.models.purchase import Purchase
from storefront.models.download_token import DownloadToken
from storefront.schemas.files import BucketType
from storefront.schemas.purchase import PurchaseRequest
from storefront.services.chain_client import ChainClient, event_topic, extract_payment_amount
from storefront.services.stock_service import StockService
from storefront.services.storage_providers.base import StorageProvider
from storefront.services.storage_providers.buckets import bucket_name
from storefront.services.token_service import TokenService
from storefront.services.wallet_auth import normalize_address
from storefront.utils.dates import as_utc

logger = logging.getLogger(__name__)

TX_HASH_PATTERN = re.compile(r"^0x[0-9a-fA-F]{64}$")
AMOUNT_PATTERN = re.compile(r"^\d+$")


@dataclass
class PurchaseResult:
    product: Product
    purchase: Purchase
    token: DownloadToken
    remaining_stock: Optional[int]
    replayed: bool


class PurchaseService:
    """Verify an on-chain payment, record the purchase once, and issue the entitlement.

    Steps run in order and any raised error aborts the remaining ones:
    product lookup, sold-out check (skipped when the tx hash already bought this
    product), receipt verification, payment amount check, idempotency check on
    the tx hash, atomic stock reservation, purchase insert
    (with stock rollback on failure), token issuance.
    """

    def __init__(self, db: Session, settings: Settings, chain_client: ChainClient, storage: StorageProvider):
        self.db = db
        self.settings = settings
        self.chain_client = chain_client
        self.storage = storage
        self.stock = StockService(db)
        self.tokens = TokenService(db)
        self.payment_topic = event_topic(settings.payment_event_signature)

    @staticmethod
    def _validate_request(request: PurchaseRequest) -> Tuple[UUID, str, str]:
        missing = [
            wire for wire, value in (
                ("productId", request.product_id),
                ("buyer", request.buyer),
                ("txHash", request.tx_hash),
            ) if not value
        ]
        if missing:
            raise ValidationError("Missing required parameters", details={"missing": missing})

        if not TX_HASH_PATTERN.match(request.tx_hash):
            raise ValidationError("txHash must be a 0x-prefixed 32-byte hex string")

        if request.amount_wei is not None and not AMOUNT_PATTERN.match(request.amount_wei):
            raise ValidationError("amountWei must be an integer string")

        buyer = normalize_address(request.buyer, "buyer")
        return request.product_id, buyer, request.tx_hash.lower()

    def _load_product(self, product_id: UUID, tenant_id: Optional[str]) -> Product:
        query = self.db.query(Product).filter(
            Product.id == product_id,
            Product.is_active.is_(True)
        )
        if tenant_id:
            query = query.filter(Product.tenant_id == tenant_id)

        product = query.first()
        if not product:
            raise NotFoundError("Product not found")
        return product

    async def _verify_payment(self, tx_hash: str, product: Product, claimed_amount: Optional[str]) -> int:
        """Check the receipt and return the paid amount in wei"""
        receipt = await self.chain_client.get_transaction_receipt(tx_hash)
        if receipt is None:
            raise ValidationError("Transaction not found", code="TX_NOT_FOUND")
        if not receipt.succeeded:
            raise ValidationError("Transaction failed on chain", code="TX_FAILED")

        logger.info(f"Transaction {tx_hash} verified in block {receipt.block_number}")

        paid = extract_payment_amount(receipt, self.payment_topic, self.settings.payment_contract_address)
        if paid is None:
            logger.error(f"No payment event in {tx_hash}: {[log.topics for log in receipt.logs]}")
            raise ValidationError("Payment event not found in transaction", code="PAYMENT_NOT_FOUND")

        required = int(product.price_amount_wei)
        if paid < required:
            raise ValidationError(
                f"Insufficient payment (required: {required}, paid: {paid})",
                code="INSUFFICIENT_PAYMENT"
            )

        if claimed_amount is not None and paid < int(claimed_amount):
            raise ValidationError(
                f"Paid amount does not match amountWei (claimed: {claimed_amount}, paid: {paid})",
                code="INSUFFICIENT_PAYMENT"
            )

        return paid

    def _find_purchase(self, tx_hash: str) -> Optional[Purchase]:
        return self.db.query(Purchase).filter(Purchase.tx_hash == tx_hash).first()

    def _record_purchase(self, product: Product, buyer: str, tx_hash: str, paid: int) -> Tuple[Purchase, Optional[int], bool]:
        """Reserve stock and insert the purchase. Returns (purchase, remaining_stock, replayed)."""
        remaining = None
        if not product.is_unlimited:
            remaining = self.stock.decrement(product.id)
            if remaining is None:
                logger.warning(f"Stock reservation failed for product {product.id}: sold out")
                raise SoldOutError("SOLD OUT", details={"remainingStock": 0})

        purchase = Purchase(
            product_id=product.id,
            buyer=buyer,
            tx_hash=tx_hash,
            amount_wei=str(paid),
        )
        self.db.add(purchase)

        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to record purchase for {tx_hash}: {e}", exc_info=True)
            if not product.is_unlimited:
                self.stock.restore(product.id)

            # A concurrent request with the same tx hash won the insert
            if isinstance(e, IntegrityError):
                winner = self._find_purchase(tx_hash)
                if winner is not None and winner.product_id == product.id:
                    logger.info(f"Purchase for {tx_hash} was recorded concurrently, continuing idempotently")
                    return winner, self._current_stock(product), True

            raise StoreError("Failed to record purchase", details=str(e))

        self.db.refresh(purchase)
        logger.info(f"Purchase recorded: {purchase.id} ({tx_hash})")
        return purchase, remaining, False

    def _current_stock(self, product: Product) -> Optional[int]:
        if product.is_unlimited:
            return None
        return self.db.query(Product.stock).filter(Product.id == product.id).scalar()

    async def purchase(self, request: PurchaseRequest, ttl_seconds: int) -> PurchaseResult:
        product_id, buyer, tx_hash = self._validate_request(request)
        logger.info(f"Purchase started: product={product_id} buyer={buyer} tx={tx_hash}")

        product = self._load_product(product_id, request.tenant_id)

        # A replay of a recorded purchase never consumes stock, so it skips the sold-out check
        recorded = self._find_purchase(tx_hash)
        is_replay = recorded is not None and recorded.product_id == product.id

        # Checked before touching the chain so sold-out products fail fast
        if not is_replay and not product.is_unlimited and product.stock <= 0:
            logger.info(f"Product {product_id} is sold out")
            raise SoldOutError("SOLD OUT", details={"remainingStock": 0})

        paid = await self._verify_payment(tx_hash, product, request.amount_wei)

        existing = recorded or self._find_purchase(tx_hash)
        if existing is not None:
            if existing.product_id != product.id:
                raise ConflictError("Transaction was already used for another product", code="TX_ALREADY_USED")
            logger.info(f"Purchase for {tx_hash} already recorded (idempotent replay)")
            purchase, remaining, replayed = existing, self._current_stock(product), True
        else:
            purchase, remaining, replayed = self._record_purchase(product, buyer, tx_hash, paid)

        token = self.tokens.find_reusable_token(purchase.id) if replayed else None
        if token is None:
            token = self.tokens.create_token(purchase.id, product.id, ttl_seconds)

        return PurchaseResult(
            product=product,
            purchase=purchase,
            token=token,
            remaining_stock=remaining,
            replayed=replayed,
        )

    async def purchase_with_token(self, request: PurchaseRequest) -> dict:
        """Token flow: the buyer redeems the token later at /download/{token}"""
        result = await self.purchase(request, self.settings.token_ttl_seconds)
        return {
            "success": True,
            "token": result.token.token,
            "purchase_id": result.purchase.id,
            "expires_at": int(as_utc(result.token.expires_at).timestamp()),
            "remaining_stock": result.remaining_stock,
        }

    async def purchase_with_signed_url(self, request: PurchaseRequest) -> dict:
        """Direct flow: hand back a short-lived signed URL to the content right away"""
        ttl = self.settings.signed_url_ttl_seconds
        result = await self.purchase(request, ttl)

        signed_url = self.storage.create_signed_url(
            bucket_name(self.settings, BucketType.DOWNLOADS),
            result.product.content_path,
            ttl
        )
        logger.info(f"Signed URL issued for purchase {result.purchase.id}")

        return {
            "success": True,
            "signed_url": signed_url,
            "expires_at": int(as_utc(result.token.expires_at).timestamp()),
            "is_unlimited": result.product.is_unlimited,
            "remaining_stock": result.remaining_stock,
        }
