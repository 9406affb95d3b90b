import logging

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import is_address, to_checksum_address

from storefront.errors import AuthenticationError, ValidationError

logger = logging.getLogger(__name__)


def normalize_address(address: str, field_name: str = "address") -> str:
    """EIP-55 checksum form of an address, or ValidationError"""
    if not address or not is_address(address):
        raise ValidationError(f"{field_name} is not a valid wallet address")
    return to_checksum_address(address)


def verify_wallet_signature(address: str, message: str, signature: str) -> None:
    """Raise AuthenticationError unless ``signature`` is ``address`` signing ``message`` (personal_sign)"""
    try:
        recovered = Account.recover_message(encode_defunct(text=message), signature=signature)
    except Exception as e:
        logger.warning(f"Signature recovery failed for {address}: {e}")
        raise AuthenticationError("Signature verification failed")

    if recovered.lower() != address.lower():
        logger.warning(f"Signature for {address} was produced by {recovered}")
        raise AuthenticationError("Wallet signature is invalid")
