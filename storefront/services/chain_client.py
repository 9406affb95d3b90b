"""Client for reading transaction receipts from an EVM JSON-RPC endpoint"""
import httpx
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from eth_utils import keccak

from storefront.errors import ChainRPCError

logger = logging.getLogger(__name__)

RECEIPT_STATUS_SUCCESS = "success"
RECEIPT_STATUS_FAILURE = "failure"


@dataclass
class ReceiptLog:
    address: str
    topics: List[str]
    data: str


@dataclass
class TransactionReceipt:
    tx_hash: str
    status: str
    block_number: Optional[int] = None
    logs: List[ReceiptLog] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status == RECEIPT_STATUS_SUCCESS


def event_topic(signature: str) -> str:
    """topic0 of an event, e.g. event_topic("TipSent(address,uint256)")"""
    return "0x" + keccak(text=signature).hex()


def _hex_to_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    return int(value, 16)


def extract_payment_amount(
    receipt: TransactionReceipt,
    topic: str,
    contract_address: Optional[str] = None
) -> Optional[int]:
    """Amount carried by the first matching payment event log, or None.

    The amount is the last 32-byte word of the log data, which covers both
    ``Event(address indexed, uint256)`` and ``Event(address, uint256)`` layouts.
    """
    topic = topic.lower()
    contract = contract_address.lower() if contract_address else None

    for log in receipt.logs:
        if not log.topics or log.topics[0].lower() != topic:
            continue
        if contract and log.address.lower() != contract:
            continue

        data = log.data[2:] if log.data.startswith("0x") else log.data
        if not data:
            continue
        try:
            return int(data[-64:], 16)
        except ValueError:
            logger.warning(f"Skipping payment log with malformed data: {log.data!r}")

    return None


class ChainClient:
    """JSON-RPC client for the chain the storefront accepts payments on"""

    def __init__(self, rpc_url: Optional[str], timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.transport = transport

        if not self.rpc_url:
            logger.warning("Chain RPC not configured (missing CHAIN_RPC_URL)")

    async def _call(self, method: str, params: List[Any]) -> Any:
        if not self.rpc_url:
            raise ChainRPCError("Chain RPC is not configured")

        request_body = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.rpc_url, json=request_body)
                response.raise_for_status()
                payload = response.json()
        except httpx.HTTPError as e:
            logger.error(f"Chain RPC {method} failed: {e}")
            raise ChainRPCError(f"Chain RPC request failed: {e}", details=str(e))
        except ValueError as e:
            logger.error(f"Chain RPC {method} returned invalid JSON: {e}")
            raise ChainRPCError("Chain RPC returned an invalid response", details=str(e))

        if not isinstance(payload, dict):
            logger.error(f"Chain RPC {method} returned a non-object payload: {payload!r}")
            raise ChainRPCError("Chain RPC returned an invalid response")

        if payload.get("error"):
            error = payload["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            logger.error(f"Chain RPC {method} returned error: {message}")
            raise ChainRPCError(f"Chain RPC error: {message}", details=error)

        return payload.get("result")

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[TransactionReceipt]:
        """Get a receipt by transaction hash

        Returns:
            The receipt, or None while the transaction is unknown or pending
        """
        result = await self._call("eth_getTransactionReceipt", [tx_hash])
        if not result:
            logger.info(f"No receipt for transaction {tx_hash}")
            return None

        try:
            status = RECEIPT_STATUS_SUCCESS if _hex_to_int(result.get("status")) == 1 else RECEIPT_STATUS_FAILURE
            logs = [
                ReceiptLog(
                    address=log.get("address", ""),
                    topics=list(log.get("topics") or []),
                    data=log.get("data") or "0x",
                )
                for log in result.get("logs") or []
            ]
            block_number = _hex_to_int(result.get("blockNumber"))
        except (AttributeError, TypeError, ValueError) as e:
            logger.error(f"Malformed receipt for {tx_hash}: {result!r}")
            raise ChainRPCError("Chain RPC returned a malformed receipt", details=str(e))

        return TransactionReceipt(
            tx_hash=result.get("transactionHash", tx_hash),
            status=status,
            block_number=block_number,
            logs=logs,
        )
