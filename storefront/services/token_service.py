from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from datetime import timedelta
from typing import Optional
from uuid import UUID
import logging
import secrets

from storefront.errors import StoreError, NotFoundError, ConflictError, GoneError
from storefront.models.download_token import DownloadToken
from storefront.utils.dates import utcnow, is_expired

logger = logging.getLogger(__name__)


class TokenService:
    """Download token issuance and single-use redemption"""

    def __init__(self, db: Session):
        self.db = db

    def create_token(self, purchase_id: UUID, product_id: UUID, ttl_seconds: int) -> DownloadToken:
        """Issue a fresh opaque token valid for ttl_seconds"""
        download_token = DownloadToken(
            purchase_id=purchase_id,
            product_id=product_id,
            token=secrets.token_urlsafe(32),
            is_consumed=False,
            expires_at=utcnow() + timedelta(seconds=ttl_seconds),
        )
        self.db.add(download_token)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to issue download token for purchase {purchase_id}: {e}", exc_info=True)
            raise StoreError("Failed to issue download token", details=str(e))

        self.db.refresh(download_token)
        logger.info(f"Download token issued for purchase {purchase_id}, expires {download_token.expires_at}")
        return download_token

    def find_reusable_token(self, purchase_id: UUID) -> Optional[DownloadToken]:
        """Newest unconsumed, unexpired token of a purchase"""
        return self.db.query(DownloadToken).filter(
            DownloadToken.purchase_id == purchase_id,
            DownloadToken.is_consumed.is_(False),
            DownloadToken.expires_at > utcnow()
        ).order_by(DownloadToken.created_at.desc()).first()

    def consume_token(self, token: str) -> DownloadToken:
        """Mark a token consumed in one conditional UPDATE.

        Raises:
            NotFoundError: unknown token
            GoneError: expired, whether or not it was consumed
            ConflictError: already consumed
        """
        now = utcnow()
        try:
            matched = self.db.query(DownloadToken).filter(
                DownloadToken.token == token,
                DownloadToken.is_consumed.is_(False),
                DownloadToken.expires_at > now
            ).update(
                {DownloadToken.is_consumed: True, DownloadToken.consumed_at: now},
                synchronize_session=False
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Token consumption failed: {e}", exc_info=True)
            raise StoreError("Failed to verify download token", details=str(e))

        download_token = self.db.query(DownloadToken).filter(DownloadToken.token == token).first()

        if matched == 1:
            return download_token

        if download_token is None:
            raise NotFoundError("Download token not found", code="TOKEN_NOT_FOUND")
        if is_expired(download_token.expires_at, now):
            raise GoneError("Download token has expired", code="TOKEN_EXPIRED")
        raise ConflictError("Download token has already been used", code="TOKEN_ALREADY_USED")
