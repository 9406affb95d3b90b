import os
import shutil
import tempfile
import unittest
from concurrent.futures import ThreadPoolExecutor

from storefront.db.database import create_session_factory
from storefront.models import Product
from storefront.services.stock_service import StockService
from tests.helpers import TENANT, make_engine


class StockServiceTest(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.mkdtemp()
        self.engine = make_engine(f"sqlite:///{os.path.join(self.tmpdir, 'stock.db')}")
        self.Session = create_session_factory(self.engine)

    def tearDown(self):
        self.engine.dispose()
        shutil.rmtree(self.tmpdir, ignore_errors=True)

    def add_product(self, stock, is_unlimited=False):
        db = self.Session()
        product = Product(
            tenant_id=TENANT,
            name="Limited print",
            content_path="print.pdf",
            price_token="JPYC",
            price_amount_wei="1",
            stock=stock,
            is_unlimited=is_unlimited,
        )
        db.add(product)
        db.commit()
        product_id = product.id
        db.close()
        return product_id

    def stock_of(self, product_id):
        db = self.Session()
        try:
            return db.query(Product.stock).filter(Product.id == product_id).scalar()
        finally:
            db.close()

    def decrement_in_own_session(self, product_id):
        db = self.Session()
        try:
            return StockService(db).decrement(product_id)
        finally:
            db.close()

    def test_concurrent_decrements_never_oversell(self):
        product_id = self.add_product(stock=3)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: self.decrement_in_own_session(product_id), range(8)))

        successes = [r for r in results if r is not None]
        self.assertEqual(len(successes), 3)
        self.assertEqual(sorted(successes), [0, 1, 2])
        self.assertEqual(self.stock_of(product_id), 0)

    def test_sold_out(self):
        product_id = self.add_product(stock=0)

        self.assertIsNone(self.decrement_in_own_session(product_id))
        self.assertEqual(self.stock_of(product_id), 0)

    def test_unlimited_is_never_decremented(self):
        product_id = self.add_product(stock=0, is_unlimited=True)

        self.assertIsNone(self.decrement_in_own_session(product_id))

    def test_restore(self):
        product_id = self.add_product(stock=1)
        self.decrement_in_own_session(product_id)

        db = self.Session()
        self.assertTrue(StockService(db).restore(product_id))
        db.close()

        self.assertEqual(self.stock_of(product_id), 1)


if __name__ == "__main__":
    unittest.main()
