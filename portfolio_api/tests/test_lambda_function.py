import unittest
from unittest.mock import patch

from portfolio_api import auth, http_utils, lambda_function
from portfolio_api.tests.fakes import (
    ADMIN_CLAIMS,
    FakeS3,
    make_event,
    make_services,
    project_payload,
    response_json,
)
from portfolio_api.content_keys import section_index_key


class RoutingTests(unittest.TestCase):
    def setUp(self):
        self.s3 = FakeS3()
        self.services = make_services(self.s3)

    def handle(self, event):
        return lambda_function.lambda_handler(event, None, services=self.services)

    def test_preflight_returns_204_with_cors_headers(self):
        resp = self.handle(make_event("OPTIONS", "/admin/projects/anything"))
        self.assertEqual(resp["statusCode"], 204)
        self.assertEqual(resp["body"], "")
        self.assertEqual(resp["headers"]["Access-Control-Allow-Methods"], "GET,POST,PATCH,DELETE,OPTIONS")
        self.assertEqual(resp["headers"]["Access-Control-Allow-Headers"], "Content-Type, Authorization")

    def test_unknown_route_is_404(self):
        resp = self.handle(make_event("GET", "/nothing/here"))
        self.assertEqual(resp["statusCode"], 404)
        self.assertEqual(response_json(resp)["error_envelope"]["code"], "ROUTE_NOT_FOUND")

    def test_known_route_wrong_method_is_405(self):
        for method, path in (("DELETE", "/admin/projects/x"), ("GET", "/contact"), ("POST", "/public/projects")):
            with self.subTest(method=method, path=path):
                resp = self.handle(make_event(method, path))
                self.assertEqual(resp["statusCode"], 405)
                body = response_json(resp)
                self.assertFalse(body["success"])
                self.assertIn("allowed", body["error_envelope"]["details"])

    def test_admin_route_without_token_is_401_with_cors(self):
        with patch.object(auth, "COGNITO_USER_POOL_ID", ""), patch.object(auth, "AUTH_UNCONFIGURED_POLICY", "deny"):
            resp = self.handle(make_event("GET", "/admin/projects", headers={"origin": "https://example.com"}))
        self.assertEqual(resp["statusCode"], 401)
        self.assertIn("Access-Control-Allow-Origin", resp["headers"])
        self.assertEqual(response_json(resp)["error"], "Missing Authorization header")

    def test_non_admin_is_403(self):
        with patch.object(auth, "authenticate", return_value={"sub": "u", "cognito:groups": ["viewers"]}), \
                patch.object(auth, "ADMIN_EMPTY_GROUPS_POLICY", "deny"):
            resp = self.handle(make_event("POST", "/admin/projects/x", project_payload(slug="x")))
        self.assertEqual(resp["statusCode"], 403)
        self.assertEqual(response_json(resp)["error_envelope"]["code"], "FORBIDDEN")
        self.assertEqual(self.s3.objects, {})

    def test_auth_runs_before_validation(self):
        with patch.object(lambda_function, "require_admin", side_effect=auth.AuthenticationError("nope")):
            resp = self.handle(make_event("POST", "/admin/hobbies/x", "{bad json"))
        self.assertEqual(resp["statusCode"], 401)

    def test_stage_prefix_is_stripped(self):
        event = make_event("GET", "/prod/public/projects")
        event["requestContext"]["stage"] = "prod"
        resp = self.handle(event)
        self.assertEqual(resp["statusCode"], 200)
        self.assertEqual(response_json(resp)["data"]["section"], "projects")

    def test_base64_body_is_decoded(self):
        event = make_event("POST", "/admin/projects/portfolio-site", project_payload(), base64_body=True)
        with patch.object(lambda_function, "require_admin", return_value=dict(ADMIN_CLAIMS)):
            resp = self.handle(event)
        self.assertEqual(resp["statusCode"], 201)
        self.assertIn(section_index_key("projects"), self.s3.objects)

    def test_unexpected_error_is_generic_500_with_cors(self):
        self.s3.seed_json(section_index_key("projects"), {"entries": "corrupt"})
        with self.assertLogs(level="ERROR"):
            resp = self.handle(make_event("GET", "/public/projects", headers={"Origin": "https://example.com"}))
        self.assertEqual(resp["statusCode"], 500)
        body = response_json(resp)
        self.assertEqual(body["error"], "Internal Server Error")
        self.assertTrue(body["error_envelope"]["retryable"])
        self.assertIn("Access-Control-Allow-Origin", resp["headers"])

    def test_missing_bucket_configuration_is_500(self):
        with patch.object(lambda_function, "default_services", side_effect=RuntimeError("CONTENT_BUCKET missing")):
            with self.assertLogs(level="ERROR"):
                resp = lambda_function.lambda_handler(make_event("GET", "/public/projects"), None)
        self.assertEqual(resp["statusCode"], 500)


class CorsTests(unittest.TestCase):
    def test_echoes_request_origin_when_no_allowlist(self):
        with patch.object(http_utils.config, "ALLOWED_ORIGINS", ()):
            self.assertEqual(http_utils._cors_headers("https://a.example")["Access-Control-Allow-Origin"], "https://a.example")
            self.assertEqual(http_utils._cors_headers(None)["Access-Control-Allow-Origin"], "*")

    def test_allowlist(self):
        allowed = ("https://site.example", "https://www.site.example")
        with patch.object(http_utils.config, "ALLOWED_ORIGINS", allowed):
            self.assertEqual(
                http_utils._cors_headers("https://www.site.example")["Access-Control-Allow-Origin"],
                "https://www.site.example",
            )
            self.assertEqual(
                http_utils._cors_headers("https://evil.example")["Access-Control-Allow-Origin"],
                "https://site.example",
            )

    def test_error_envelope_shape(self):
        resp = http_utils._error(409, "Already exists", origin="https://a.example")
        body = response_json(resp)
        self.assertEqual(body["success"], False)
        self.assertEqual(body["error"], "Already exists")
        self.assertEqual(
            body["error_envelope"],
            {"code": "CONFLICT", "message": "Already exists", "retryable": False, "details": {}},
        )
        self.assertNotIn("details", body)


if __name__ == "__main__":
    unittest.main()
