import os
import unittest
from unittest.mock import patch

from storefront.config import Settings


class SettingsTest(unittest.TestCase):
    def test_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

        self.assertEqual(settings.token_ttl_seconds, 86400)
        self.assertEqual(settings.signed_url_ttl_seconds, 600)
        self.assertEqual(settings.max_upload_bytes, 48 * 1024 * 1024)
        self.assertEqual(settings.payment_event_signature, "TipSent(address,uint256)")
        self.assertEqual(settings.bucket_downloads, "gh-downloads")
        self.assertFalse(settings.is_production)

    def test_missing_required(self):
        with patch.dict(os.environ, {"SUPABASE_URL": "https://project.supabase.co"}, clear=True):
            settings = Settings(_env_file=None)

        self.assertEqual(
            settings.missing_required(),
            ["DATABASE_URL", "SUPABASE_SERVICE_ROLE_KEY", "CHAIN_RPC_URL"]
        )

    def test_environment_overrides(self):
        env = {
            "ENVIRONMENT": "production",
            "TOKEN_TTL_SECONDS": "60",
            "BUCKET_PUBLIC": "shop-public",
            "CORS_ALLOWED_ORIGINS": '["https://shop.example"]',
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings(_env_file=None)

        self.assertTrue(settings.is_production)
        self.assertEqual(settings.token_ttl_seconds, 60)
        self.assertEqual(settings.bucket_public, "shop-public")
        self.assertEqual(settings.cors_allowed_origins, ["https://shop.example"])


if __name__ == "__main__":
    unittest.main()
