from datetime import timedelta
from typing import Dict, List, Optional

from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.pool import StaticPool

from storefront.config import Settings
from storefront.db.database import Base, create_session_factory
from storefront.errors import ChainRPCError, StorageError
from storefront.main import create_app
from storefront.models import Product
from storefront.services.chain_client import (
    RECEIPT_STATUS_FAILURE,
    RECEIPT_STATUS_SUCCESS,
    ReceiptLog,
    TransactionReceipt,
    event_topic,
)
from storefront.services.storage_providers.base import StorageProvider
from storefront.utils.dates import utcnow

BUYER = "0x90f8bf6a479f320ead074411a4b0e7944ea8c9c1"
BUYER_CHECKSUM = "0x90F8bf6A479f320ead074411a4B0e7944Ea8c9C1"
TENANT = "tenant-001"
ONE_TOKEN = 10 ** 18


def tx_hash(n: int) -> str:
    return "0x" + format(n, "064x")


def make_settings(**overrides) -> Settings:
    values = {
        "ENVIRONMENT": "test",
        "PUBLIC_BASE_URL": "https://shop.test",
        "RUN_MIGRATIONS": False,
        "DATABASE_URL": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


class FakeStorageProvider(StorageProvider):
    """In-memory storage that records every call"""

    def __init__(self):
        self.objects: Dict[tuple, bytes] = {}
        self.uploads: List[tuple] = []
        self.removed: List[tuple] = []
        self.signed: List[tuple] = []
        self.public_urls: List[tuple] = []
        self.failing_buckets = set()

    def upload(self, bucket, key, data, content_type):
        self.uploads.append((bucket, key, content_type))
        self.objects[(bucket, key)] = data
        return key

    def get_public_url(self, bucket, path):
        self.public_urls.append((bucket, path))
        return f"https://storage.test/public/{bucket}/{path}"

    def create_signed_url(self, bucket, path, ttl_seconds):
        self.signed.append((bucket, path, ttl_seconds))
        return f"https://storage.test/signed/{bucket}/{path}?ttl={ttl_seconds}"

    def remove(self, bucket, keys):
        if bucket in self.failing_buckets:
            raise StorageError("Removal failed: bucket unavailable")
        for key in keys:
            self.removed.append((bucket, key))
            self.objects.pop((bucket, key), None)
        return list(keys)


class FakeChainClient:
    """Chain client double: receipts by tx hash, optional RPC failures"""

    def __init__(self):
        self.receipts: Dict[str, TransactionReceipt] = {}
        self.failing = set()
        self.calls: List[str] = []

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[TransactionReceipt]:
        self.calls.append(tx_hash)
        if tx_hash in self.failing:
            raise ChainRPCError("Chain RPC request failed: connection refused")
        return self.receipts.get(tx_hash)

    def add_payment(self, tx_hash: str, amount_wei: int, succeeded: bool = True, payer: str = BUYER):
        self.receipts[tx_hash] = payment_receipt(tx_hash, amount_wei, succeeded, payer)


def payment_receipt(tx_hash: str, amount_wei: int, succeeded: bool = True, payer: str = BUYER) -> TransactionReceipt:
    data = "0x" + payer[2:].lower().rjust(64, "0") + format(amount_wei, "064x")
    log = ReceiptLog(
        address="0x5fbdb2315678afecb367f032d93f642f64180aa3",
        topics=[event_topic("TipSent(address,uint256)")],
        data=data,
    )
    return TransactionReceipt(
        tx_hash=tx_hash,
        status=RECEIPT_STATUS_SUCCESS if succeeded else RECEIPT_STATUS_FAILURE,
        block_number=100,
        logs=[log],
    )


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(url: str = "sqlite://"):
    if url == "sqlite://":
        engine = create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    else:
        engine = create_engine(url, connect_args={"check_same_thread": False, "timeout": 30})
    event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    Base.metadata.create_all(bind=engine)
    return engine


class AppHarness:
    """An app wired to in-memory SQLite and the fakes above"""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or make_settings()
        self.engine = make_engine()
        self.Session = create_session_factory(self.engine)
        self.storage = FakeStorageProvider()
        self.chain = FakeChainClient()

        self.app = create_app(self.settings)
        self.app.state.engine = self.engine
        self.app.state.session_factory = self.Session
        self.app.state.storage = self.storage
        self.app.state.chain_client = self.chain
        self.client = TestClient(self.app)

    def close(self):
        self.client.close()
        self.engine.dispose()

    def add_product(self, **fields) -> Product:
        values = {
            "tenant_id": TENANT,
            "name": "Avatar GLB",
            "description": "Rigged avatar",
            "content_path": "1700000000000_abcd1234_avatar.glb",
            "image_url": "https://storage.test/public/gh-public/1700000000000-thumb.png",
            "price_token": "JPYC",
            "price_amount_wei": str(ONE_TOKEN),
            "stock": 1,
            "is_unlimited": False,
            "is_active": True,
        }
        values.update(fields)
        db = self.Session()
        try:
            product = Product(**values)
            db.add(product)
            db.commit()
            db.refresh(product)
            db.expunge(product)
            return product
        finally:
            db.close()

    def purchase(self, product_id, tx: str, path: str = "/api/purchase/init", **extra):
        body = {"productId": str(product_id), "buyer": BUYER, "txHash": tx}
        body.update(extra)
        return self.client.post(path, json=body)


def past(seconds: int = 60):
    return utcnow() - timedelta(seconds=seconds)
