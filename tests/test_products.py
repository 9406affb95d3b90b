import unittest
from datetime import timedelta

from storefront.models import Product
from storefront.utils.dates import utcnow
from tests.helpers import AppHarness, TENANT


def product_body(**overrides):
    body = {
        "tenantId": TENANT,
        "name": "Avatar GLB",
        "description": "Rigged avatar",
        "contentPath": "1700000000000_abcd1234_avatar.glb",
        "imageUrl": "https://storage.test/public/gh-public/thumb.png",
        "priceToken": "JPYC",
        "priceAmountWei": "1000000000000000000",
        "stock": 5,
        "isUnlimited": False,
    }
    body.update(overrides)
    return body


class ProductAdminTest(unittest.TestCase):
    def setUp(self):
        self.harness = AppHarness()
        self.client = self.harness.client

    def tearDown(self):
        self.harness.close()

    def test_list_requires_tenant(self):
        response = self.client.get("/api/admin/products")
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["success"])

    def test_list_is_newest_first_and_tenant_scoped(self):
        now = utcnow()
        older = self.harness.add_product(name="Older", created_at=now - timedelta(hours=2))
        newer = self.harness.add_product(name="Newer", created_at=now - timedelta(hours=1))
        self.harness.add_product(name="Foreign", tenant_id="tenant-002")

        response = self.client.get("/api/admin/products", params={"tenantId": TENANT})

        self.assertEqual(response.status_code, 200)
        ids = [p["id"] for p in response.json()["products"]]
        self.assertEqual(ids, [str(newer.id), str(older.id)])

    def test_list_filters_by_active_flag(self):
        self.harness.add_product(name="Live")
        self.harness.add_product(name="Hidden", is_active=False)

        response = self.client.get("/api/admin/products", params={"tenantId": TENANT, "isActive": "false"})

        names = [p["name"] for p in response.json()["products"]]
        self.assertEqual(names, ["Hidden"])

    def test_create_returns_201_with_camel_case_fields(self):
        response = self.client.post("/api/admin/products", json=product_body())

        self.assertEqual(response.status_code, 201)
        product = response.json()["product"]
        self.assertEqual(product["priceAmountWei"], "1000000000000000000")
        self.assertEqual(product["stock"], 5)
        self.assertTrue(product["isActive"])
        self.assertIn("updatedAt", product)

    def test_create_lists_missing_fields(self):
        response = self.client.post("/api/admin/products", json={"tenantId": TENANT, "name": "Incomplete"})

        self.assertEqual(response.status_code, 400)
        body = response.json()
        self.assertEqual(body["code"], "VALIDATION_ERROR")
        self.assertEqual(set(body["details"]["missing"]), {"contentPath", "priceToken", "priceAmountWei"})

    def test_create_rejects_non_integer_price(self):
        for price in ("1.5", "-1", "0", "1e18", "abc"):
            response = self.client.post("/api/admin/products", json=product_body(priceAmountWei=price))
            self.assertEqual(response.status_code, 400, price)

    def test_create_requires_stock_unless_unlimited(self):
        response = self.client.post("/api/admin/products", json=product_body(stock=None))
        self.assertEqual(response.status_code, 400)

        response = self.client.post("/api/admin/products", json=product_body(stock=-1))
        self.assertEqual(response.status_code, 400)

        response = self.client.post("/api/admin/products", json=product_body(stock=None, isUnlimited=True))
        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()["product"]["stock"], 0)

    def test_update_with_current_timestamp_advances_it(self):
        created = self.client.post("/api/admin/products", json=product_body()).json()["product"]

        response = self.client.put(
            f"/api/admin/products/{created['id']}",
            json=product_body(name="Renamed", updatedAt=created["updatedAt"])
        )

        self.assertEqual(response.status_code, 200)
        updated = response.json()["product"]
        self.assertEqual(updated["name"], "Renamed")
        self.assertNotEqual(updated["updatedAt"], created["updatedAt"])

    def test_update_with_stale_timestamp_conflicts(self):
        created = self.client.post("/api/admin/products", json=product_body()).json()["product"]
        first = self.client.put(
            f"/api/admin/products/{created['id']}",
            json=product_body(name="First", updatedAt=created["updatedAt"])
        )
        self.assertEqual(first.status_code, 200)

        stale = self.client.put(
            f"/api/admin/products/{created['id']}",
            json=product_body(name="Second", updatedAt=created["updatedAt"])
        )

        self.assertEqual(stale.status_code, 409)
        self.assertEqual(stale.json()["code"], "OPTIMISTIC_LOCK_CONFLICT")
        db = self.harness.Session()
        self.assertEqual(db.query(Product.name).scalar(), "First")
        db.close()

    def test_upsert_with_id_updates(self):
        created = self.client.post("/api/admin/products", json=product_body()).json()["product"]

        response = self.client.post(
            "/api/admin/products",
            json=product_body(id=created["id"], stock=9, updatedAt=created["updatedAt"])
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["product"]["stock"], 9)

    def test_update_rejects_other_tenant(self):
        product = self.harness.add_product()

        response = self.client.put(f"/api/admin/products/{product.id}", json=product_body(tenantId="tenant-002"))

        self.assertEqual(response.status_code, 403)

    def test_update_unknown_product(self):
        response = self.client.put(
            "/api/admin/products/5f0c2b1e-6a4b-4e0a-9a57-1d2f3c4b5a69",
            json=product_body()
        )
        self.assertEqual(response.status_code, 404)

    def test_delete_is_soft(self):
        product = self.harness.add_product()

        response = self.client.delete(f"/api/admin/products/{product.id}", params={"tenantId": TENANT})

        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()["product"]["isActive"])
        db = self.harness.Session()
        self.assertEqual(db.query(Product).count(), 1)
        db.close()

    def test_delete_requires_tenant(self):
        product = self.harness.add_product()

        response = self.client.delete(f"/api/admin/products/{product.id}")

        self.assertEqual(response.status_code, 400)


if __name__ == "__main__":
    unittest.main()
