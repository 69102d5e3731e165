import json

from django.http import HttpResponse
from django.test import RequestFactory, SimpleTestCase, override_settings

from social.errors import Forbidden, StorageError
from social.middleware import ApiErrorMiddleware

from .base import ApiTestCase


class ApiErrorMiddlewareTests(SimpleTestCase):

    def setUp(self):
        self.middleware = ApiErrorMiddleware(lambda request: HttpResponse("ok"))
        self.request = RequestFactory().get("/api/posts")

    def test_api_error_keeps_status_and_kind(self):
        response = self.middleware.process_exception(self.request, Forbidden())

        self.assertEqual(response.status_code, 403)
        self.assertEqual(json.loads(response.content), {"message": "Unauthorized", "error": "forbidden"})

    def test_storage_error(self):
        response = self.middleware.process_exception(self.request, StorageError("Failed to store file"))

        self.assertEqual(response.status_code, 500)
        self.assertEqual(json.loads(response.content)["error"], "storage_error")

    def test_unexpected_error_is_generic(self):
        with self.assertLogs("social.middleware", level="ERROR"):
            response = self.middleware.process_exception(self.request, RuntimeError("secret detail"))

        self.assertEqual(response.status_code, 500)
        body = json.loads(response.content)
        self.assertEqual(body, {"message": "Server error", "error": "unexpected"})

    def test_passes_responses_through(self):
        self.assertEqual(self.middleware(self.request).content, b"ok")


@override_settings(CORS_ALLOWED_ORIGINS=["http://localhost:5173"])
class CorsTests(ApiTestCase):

    def test_allowed_origin_gets_cors_headers(self):
        response = self.client.get("/api/posts", HTTP_ORIGIN="http://localhost:5173")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response["Access-Control-Allow-Origin"], "http://localhost:5173")

    def test_preflight_allows_bearer_header(self):
        response = self.client.options(
            "/api/posts",
            HTTP_ORIGIN="http://localhost:5173",
            HTTP_ACCESS_CONTROL_REQUEST_METHOD="POST",
            HTTP_ACCESS_CONTROL_REQUEST_HEADERS="authorization",
        )

        self.assertEqual(response.status_code, 200)
        self.assertIn("authorization", response["Access-Control-Allow-Headers"])

    def test_unknown_origin_gets_no_cors_headers(self):
        response = self.client.get("/api/posts", HTTP_ORIGIN="http://evil.example.com")
        self.assertNotIn("Access-Control-Allow-Origin", response)
