import unittest
from unittest.mock import MagicMock, patch

import requests

from storefront.errors import StorageError
from storefront.services.storage_providers import SupabaseStorageProvider


def fake_response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body if body is not None else {}
    response.text = str(body)
    return response


class SupabaseStorageProviderTest(unittest.TestCase):
    def setUp(self):
        self.provider = SupabaseStorageProvider("https://project.supabase.co/", "service-key")

    def test_public_url(self):
        self.assertEqual(
            self.provider.get_public_url("gh-public", "123-abc.png"),
            "https://project.supabase.co/storage/v1/object/public/gh-public/123-abc.png"
        )

    def test_upload(self):
        with patch.object(self.provider.session, "post", return_value=fake_response(200, {"Key": "gh-public/a.png"})) as post:
            path = self.provider.upload("gh-public", "a.png", b"bytes", "image/png")

        self.assertEqual(path, "a.png")
        url = post.call_args.args[0]
        headers = post.call_args.kwargs["headers"]
        self.assertEqual(url, "https://project.supabase.co/storage/v1/object/gh-public/a.png")
        self.assertEqual(headers["Authorization"], "Bearer service-key")
        self.assertEqual(headers["Content-Type"], "image/png")
        self.assertEqual(post.call_args.kwargs["data"], b"bytes")

    def test_upload_rejected(self):
        with patch.object(self.provider.session, "post", return_value=fake_response(400, {"message": "Duplicate"})):
            with self.assertRaises(StorageError) as ctx:
                self.provider.upload("gh-public", "a.png", b"bytes", "image/png")

        self.assertEqual(ctx.exception.details, "Duplicate")

    def test_network_failure(self):
        with patch.object(self.provider.session, "post", side_effect=requests.exceptions.ConnectionError("down")):
            with self.assertRaises(StorageError):
                self.provider.upload("gh-public", "a.png", b"bytes", "image/png")

    def test_signed_url(self):
        body = {"signedURL": "/object/sign/gh-downloads/file.zip?token=abc"}
        with patch.object(self.provider.session, "post", return_value=fake_response(200, body)) as post:
            url = self.provider.create_signed_url("gh-downloads", "file.zip", 600)

        self.assertEqual(url, "https://project.supabase.co/storage/v1/object/sign/gh-downloads/file.zip?token=abc")
        self.assertEqual(post.call_args.kwargs["json"], {"expiresIn": 600})

    def test_remove(self):
        body = [{"name": "file.zip", "bucket_id": "gh-downloads"}]
        with patch.object(self.provider.session, "delete", return_value=fake_response(200, body)) as delete:
            removed = self.provider.remove("gh-downloads", ["file.zip"])

        self.assertEqual(removed, ["file.zip"])
        self.assertEqual(delete.call_args.kwargs["json"], {"prefixes": ["file.zip"]})

    def test_remove_with_non_json_body(self):
        response = fake_response(200)
        response.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")
        response.text = "<html>gateway</html>"
        with patch.object(self.provider.session, "delete", return_value=response):
            with self.assertRaises(StorageError) as ctx:
                self.provider.remove("gh-downloads", ["file.zip"])

        self.assertEqual(ctx.exception.message, "Removal failed: invalid response")

    def test_remove_with_unexpected_json_shape(self):
        with patch.object(self.provider.session, "delete", return_value=fake_response(200, {"ok": True})):
            with self.assertRaises(StorageError):
                self.provider.remove("gh-downloads", ["file.zip"])

    def test_signed_url_with_non_json_body(self):
        response = fake_response(200)
        response.json.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")
        response.text = ""
        with patch.object(self.provider.session, "post", return_value=response):
            with self.assertRaises(StorageError) as ctx:
                self.provider.create_signed_url("gh-downloads", "file.zip", 600)

        self.assertEqual(ctx.exception.message, "Signed URL creation failed: invalid response")

    def test_error_body_that_is_not_an_object(self):
        with patch.object(self.provider.session, "post", return_value=fake_response(400, ["Duplicate"])):
            with self.assertRaises(StorageError) as ctx:
                self.provider.upload("gh-public", "a.png", b"bytes", "image/png")

        self.assertEqual(ctx.exception.details, "['Duplicate']")

    def test_not_configured(self):
        provider = SupabaseStorageProvider(None, None)

        with self.assertRaises(StorageError):
            provider.create_signed_url("gh-downloads", "file.zip", 600)


if __name__ == "__main__":
    unittest.main()
