import datetime as dt
import unittest
from unittest.mock import patch

from botocore.exceptions import ClientError

from portfolio_api import config, lambda_function
from portfolio_api.tests.fakes import (
    ADMIN_CLAIMS,
    FakeDdb,
    FakeS3,
    FakeSes,
    make_event,
    make_services,
    response_json,
)
from portfolio_api.notifications import render_html, render_text
from portfolio_api.serialization import _deserialize


def _contact(message="Hello, I would like to chat.", **overrides):
    body = {"name": "Ada Lovelace", "email": "ada@example.com", "message": message}
    body.update(overrides)
    return body


class ContactSubmitTests(unittest.TestCase):
    def setUp(self):
        self.ddb = FakeDdb()
        self.ses = FakeSes()
        self.services = make_services(ddb=self.ddb, ses=self.ses)

    def submit(self, body, services=None):
        resp = lambda_function.lambda_handler(
            make_event("POST", "/contact", body), None, services=services or self.services
        )
        return resp["statusCode"], response_json(resp)

    def test_message_of_nine_characters_fails(self):
        status, body = self.submit(_contact(message="x" * 9))
        self.assertEqual(status, 400)
        self.assertEqual([d["field"] for d in body["details"]], ["message"])
        self.assertEqual(self.ddb.put_requests, [])

    def test_message_of_ten_characters_succeeds(self):
        status, body = self.submit(_contact(message="x" * 10))
        self.assertEqual(status, 201)
        self.assertTrue(body["data"]["emailSent"])
        self.assertNotIn("warning", body["data"])
        self.assertEqual(body["data"]["message"], "Contact message received successfully")

    def test_row_is_written_with_id_timestamp_and_ip(self):
        _, body = self.submit(_contact())
        self.assertEqual(len(self.ddb.put_requests), 1)
        request = self.ddb.put_requests[0]
        self.assertEqual(request["TableName"], "contact_messages")
        row = _deserialize(request["Item"])
        self.assertEqual(row["id"], body["data"]["id"])
        self.assertEqual(row["timestamp"], body["data"]["createdAt"])
        self.assertEqual(row["ip"], "203.0.113.7")
        self.assertEqual(row["email"], "ada@example.com")

    def test_notification_email_content(self):
        self.submit(_contact(name="<b>Mallory</b>"))
        sent = self.ses.sent[0]
        self.assertEqual(sent["Destination"], {"ToAddresses": ["owner@example.com"]})
        self.assertEqual(sent["Source"], "noreply@example.com")
        self.assertEqual(sent["Message"]["Subject"]["Data"], "New Contact Form Message from <b>Mallory</b>")
        self.assertIn("&lt;b&gt;Mallory&lt;/b&gt;", sent["Message"]["Body"]["Html"]["Data"])
        self.assertNotIn("ConfigurationSetName", sent)

    def test_email_failure_is_a_warning_not_an_error(self):
        ses = FakeSes(error=ClientError({"Error": {"Code": "MessageRejected", "Message": "no"}}, "SendEmail"))
        status, body = self.submit(_contact(), services=make_services(ddb=self.ddb, ses=ses))
        self.assertEqual(status, 201)
        self.assertFalse(body["data"]["emailSent"])
        self.assertIn("warning", body["data"])
        self.assertEqual(len(self.ddb.put_requests), 1)

    def test_unconfigured_mailer_skips_email(self):
        status, body = self.submit(_contact(), services=make_services(ddb=self.ddb, ses=self.ses, from_email=""))
        self.assertEqual(status, 201)
        self.assertFalse(body["data"]["emailSent"])
        self.assertEqual(self.ses.sent, [])

    def test_missing_body(self):
        status, body = self.submit(None)
        self.assertEqual(status, 400)
        self.assertEqual(body["error"], "Request body is required")

    def test_contact_route_is_public(self):
        with patch.object(lambda_function, "require_admin") as require_admin:
            status, _ = self.submit(_contact())
        self.assertEqual(status, 201)
        require_admin.assert_not_called()


class NotificationRenderingTests(unittest.TestCase):
    def test_text_body_includes_message_and_ip(self):
        message = {
            "id": "abc", "timestamp": "2024-05-01T10:00:00.000Z", "ip": "198.51.100.1",
            "name": "Ada", "email": "ada@example.com", "message": "Line one\nLine two",
        }
        text = render_text(message)
        self.assertIn("Line one\nLine two", text)
        self.assertIn("IP Address: 198.51.100.1", text)
        self.assertIn("May 01, 2024", text)
        self.assertIn("Line one<br>Line two", render_html(message))


class UploadUrlTests(unittest.TestCase):
    def setUp(self):
        self.s3 = FakeS3()
        self.services = make_services(self.s3)
        patcher = patch.object(lambda_function, "require_admin", return_value=dict(ADMIN_CLAIMS))
        patcher.start()
        self.addCleanup(patcher.stop)

    def request(self, **overrides):
        body = {
            "section": "exp",
            "slug": "acme-backend",
            "filename": "cover.png",
            "contentType": "image/png",
            "fileSize": 1024,
        }
        body.update(overrides)
        resp = lambda_function.lambda_handler(make_event("POST", "/admin/uploads", body), None, services=self.services)
        return resp["statusCode"], response_json(resp)

    def _fields(self, body):
        return [d["field"] for d in body["details"]]

    def test_valid_request_returns_presigned_url(self):
        before = dt.datetime.now(dt.timezone.utc)
        status, body = self.request()
        self.assertEqual(status, 200)
        data = body["data"]
        self.assertEqual(data["key"], "content/exp/acme-backend/cover.png")
        self.assertIn("X-Amz-Expires=3600", data["url"])
        self.assertEqual(data["requestedBy"], "admin-user")
        self.assertEqual(data["fileInfo"]["type"], "image")
        expires = dt.datetime.fromisoformat(data["expiresAt"].replace("Z", "+00:00"))
        self.assertAlmostEqual((expires - before).total_seconds(), 3600, delta=5)

    def test_path_traversal_is_rejected(self):
        for filename in ("../cover.png", "..cover.png", "a/b.png", "a\\b.png"):
            with self.subTest(filename=filename):
                status, body = self.request(filename=filename)
                self.assertEqual(status, 400)
                self.assertIn("Filename cannot contain path traversal characters", [d["message"] for d in body["details"]])

    def test_traversal_is_rejected_even_with_invalid_other_fields(self):
        status, body = self.request(filename="../x.png", contentType="text/html", fileSize=-1)
        self.assertEqual(status, 400)
        self.assertIn("Filename cannot contain path traversal characters", [d["message"] for d in body["details"]])

    def test_section_must_be_an_upload_section(self):
        status, body = self.request(section="projects")
        self.assertEqual(status, 400)
        self.assertEqual(self._fields(body), ["section"])

    def test_upload_sections_are_configurable(self):
        with patch.object(config, "UPLOAD_SECTIONS", ("projects",)):
            status, _ = self.request(section="projects")
        self.assertEqual(status, 200)

    def test_extension_must_be_allowed(self):
        status, body = self.request(filename="notes.txt")
        self.assertEqual(status, 400)
        self.assertEqual(self._fields(body), ["filename"])

    def test_size_limit_depends_on_type(self):
        status, body = self.request(fileSize=20 * 1024 * 1024)
        self.assertEqual(status, 400)
        self.assertEqual(body["details"][0]["message"], "File size exceeds image limit of 10MB")

        status, _ = self.request(filename="demo.mp4", contentType="video/mp4", fileSize=20 * 1024 * 1024)
        self.assertEqual(status, 200)

        status, _ = self.request(filename="demo.mp4", contentType="video/mp4", fileSize=101 * 1024 * 1024)
        self.assertEqual(status, 400)

    def test_non_positive_size_is_rejected(self):
        status, body = self.request(fileSize=0)
        self.assertEqual(status, 400)
        self.assertEqual(self._fields(body), ["fileSize"])


if __name__ == "__main__":
    unittest.main()
