import unittest

from fastapi.testclient import TestClient

from storefront.main import create_app
from tests.helpers import AppHarness, make_settings


class AppTest(unittest.TestCase):
    def setUp(self):
        self.harness = AppHarness()
        self.client = self.harness.client

    def tearDown(self):
        self.harness.close()

    def test_health(self):
        response = self.client.get("/health")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["status"], "healthy")

    def test_options_is_a_no_op(self):
        for path in ("/api/purchase/init", "/api/admin/products", "/api/download/abc"):
            self.assertEqual(self.client.options(path).status_code, 200)

    def test_cors_preflight(self):
        response = self.client.options("/api/purchase/init", headers={
            "Origin": "https://shop.example",
            "Access-Control-Request-Method": "POST",
        })

        self.assertEqual(response.status_code, 200)
        self.assertIn("access-control-allow-origin", response.headers)

    def test_wrong_method(self):
        self.assertEqual(self.client.get("/api/purchase/init").status_code, 405)
        self.assertEqual(self.client.get("/api/delete/product").status_code, 405)

    def test_wrong_method_uses_error_envelope(self):
        response = self.client.get("/api/purchase/init")

        self.assertEqual(response.status_code, 405)
        body = response.json()
        self.assertEqual(body["success"], False)
        self.assertEqual(body["code"], "METHOD_NOT_ALLOWED")
        self.assertIn("error", body)
        self.assertNotIn("detail", body)
        self.assertIn("POST", response.headers["allow"])

    def test_error_body_shape(self):
        response = self.client.get("/api/admin/products")

        body = response.json()
        self.assertEqual(body["success"], False)
        self.assertIn("error", body)
        self.assertEqual(body["code"], "VALIDATION_ERROR")


class UnconfiguredAppTest(unittest.TestCase):
    def test_missing_database_is_a_500_with_traceback_outside_production(self):
        app = create_app(make_settings())
        client = TestClient(app, raise_server_exceptions=False)

        response = client.get("/api/admin/products", params={"tenantId": "t"})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], "Internal server error")
        self.assertIn("traceback", response.json())

    def test_no_traceback_in_production(self):
        app = create_app(make_settings(ENVIRONMENT="production"))
        client = TestClient(app, raise_server_exceptions=False)

        response = client.get("/api/admin/products", params={"tenantId": "t"})

        self.assertEqual(response.status_code, 500)
        self.assertNotIn("traceback", response.json())


if __name__ == "__main__":
    unittest.main()
