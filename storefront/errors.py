"""
Error taxonomy shared by services and routers.

Services raise these; the handler registered in ``storefront.main`` turns
them into JSON responses with the matching HTTP status.
"""
from typing import Any, Optional


class StorefrontError(Exception):
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details

    def to_dict(self) -> dict:
        body = {"success": False, "error": self.message, "code": self.code}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(StorefrontError):
    status_code = 400
    code = "VALIDATION_ERROR"


class AuthenticationError(StorefrontError):
    status_code = 401
    code = "INVALID_SIGNATURE"


class TenantMismatchError(StorefrontError):
    status_code = 403
    code = "TENANT_MISMATCH"


class NotFoundError(StorefrontError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(StorefrontError):
    status_code = 409
    code = "CONFLICT"


class SoldOutError(ConflictError):
    code = "SOLD_OUT"


class GoneError(StorefrontError):
    status_code = 410
    code = "GONE"


class PayloadTooLargeError(StorefrontError):
    status_code = 413
    code = "PAYLOAD_TOO_LARGE"


class StoreError(StorefrontError):
    """The relational store rejected or failed an operation."""
    status_code = 500
    code = "STORE_ERROR"


class UpstreamError(StorefrontError):
    status_code = 502
    code = "UPSTREAM_ERROR"


class StorageError(UpstreamError):
    code = "STORAGE_ERROR"


class ChainRPCError(UpstreamError):
    code = "CHAIN_RPC_ERROR"
