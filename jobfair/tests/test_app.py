import csv
import io
import unittest

from fastapi.testclient import TestClient

from jobfair.app import create_app
from jobfair.config import Settings, get_settings
from jobfair.dependencies import get_file_store, get_recorder
from jobfair.errors import ConfigError, ExportError
from jobfair.recorders import InMemoryApplicationRecorder
from jobfair.storage import InMemoryFileStore
from jobfair.types import EXPORT_COLUMNS

PDF_10KB = b"%PDF-1.4\n" + b"0123456789" * 1024

APPLICATION_FIELDS = {
    "jobId": "42",
    "jobTitle": "Frontend Developer",
    "company": "Acme",
    "location": "Karachi",
    "type": "Full-time",
    "tags": "React,Tailwind,UI",
    "name": "Jane Doe",
    "email": "jane@x.com",
    "phone": "0300 1234567",
}


class UnreachableRecorder:
    def append(self, record):
        raise AssertionError("should not be called")

    def list_rows(self):
        raise ExportError("Sheets unreachable")


class BackendApiTests(unittest.TestCase):
    def setUp(self):
        self.settings = Settings(
            _env_file=None, jobfair_backend="memory", export_key="s3cret"
        )
        self.app = create_app(self.settings)
        self.store = InMemoryFileStore()
        self.recorder = InMemoryApplicationRecorder()
        self.app.dependency_overrides[get_settings] = lambda: self.settings
        self.app.dependency_overrides[get_file_store] = lambda: self.store
        self.app.dependency_overrides[get_recorder] = lambda: self.recorder
        self.client = TestClient(self.app)

    def apply_job(self, data=None, files=None):
        if files is None:
            files = {"file": ("cv.pdf", PDF_10KB, "application/pdf")}
        return self.client.post(
            "/api/apply-job",
            data=APPLICATION_FIELDS if data is None else data,
            files=files,
        )

    def test_apply_job_uploads_then_records(self):
        response = self.apply_job()

        self.assertEqual(response.status_code, 200, response.text)
        payload = response.json()
        self.assertTrue(payload["ok"])

        (key,) = self.store.stored_objects.keys()
        self.assertIn("42", key)
        self.assertTrue(key.startswith("cvs/42/"))
        self.assertEqual(self.store.stored_objects[key], (PDF_10KB, "application/pdf"))

        self.assertEqual(len(self.recorder.records), 1)
        record = self.recorder.records[0]
        self.assertEqual(record.cv_url, payload["cvUrl"])
        self.assertEqual(record.cv_file_id, payload["cvFileId"])
        self.assertEqual(record.name, "Jane Doe")
        self.assertEqual(record.email, "jane@x.com")
        self.assertEqual(record.tags, "React,Tailwind,UI")

    def test_record_failure_leaves_uploaded_file(self):
        self.recorder.fail_with = "Sheets quota exceeded"
        response = self.apply_job()

        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.json(), {"ok": False, "error": "Sheets quota exceeded"}
        )
        self.assertEqual(len(self.store.stored_objects), 1)
        self.assertEqual(self.recorder.records, [])

    def test_upload_failure_records_nothing(self):
        self.store.fail_with = "Drive storage quota exceeded"
        response = self.apply_job()

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"], "Drive storage quota exceeded")
        self.assertEqual(self.recorder.records, [])

    def test_missing_file_is_bad_request(self):
        boundary = "jobfairtestboundary"
        body = "".join(
            f'--{boundary}\r\nContent-Disposition: form-data; name="{k}"\r\n\r\n{v}\r\n'
            for k, v in APPLICATION_FIELDS.items()
        ) + f"--{boundary}--\r\n"
        response = self.client.post(
            "/api/apply-job",
            content=body.encode("utf-8"),
            headers={"Content-Type": f"multipart/form-data; boundary={boundary}"},
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json(), {"ok": False, "error": "No CV file uploaded"})
        self.assertEqual(self.store.stored_objects, {})

    def test_missing_required_field_is_bad_request(self):
        data = dict(APPLICATION_FIELDS, email="")
        response = self.apply_job(data=data)

        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["ok"])
        self.assertIn("email", response.json()["error"])
        self.assertEqual(self.store.stored_objects, {})

    def test_non_multipart_body_is_bad_request(self):
        response = self.client.post("/api/apply-job", json=APPLICATION_FIELDS)
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["ok"])

    def test_wrong_method_is_rejected_before_parsing(self):
        for path in ("/api/apply-job", "/api/upload", "/api/apply"):
            response = self.client.get(path)
            self.assertEqual(response.status_code, 405, path)
            self.assertFalse(response.json()["ok"])
        self.assertEqual(self.store.stored_objects, {})

    def test_upload_returns_url_and_file_id(self):
        response = self.client.post(
            "/api/upload",
            data={"jobId": "7"},
            files={"file": ("my cv.pdf", b"%PDF", "application/pdf")},
        )

        self.assertEqual(response.status_code, 200, response.text)
        payload = response.json()
        self.assertTrue(payload["ok"])
        self.assertTrue(payload["cvFileId"].startswith("cvs/7/"))
        self.assertTrue(payload["cvFileId"].endswith("_my_cv.pdf"))
        self.assertEqual(self.recorder.records, [])

    def test_apply_records_json_application(self):
        body = dict(
            APPLICATION_FIELDS,
            tags=["React", "Tailwind"],
            cvUrl="https://drive.google.com/file/d/abc/view",
            cvFileId="abc",
        )
        response = self.client.post("/api/apply", json=body)

        self.assertEqual(response.status_code, 200, response.text)
        self.assertEqual(response.json(), {"ok": True})
        record = self.recorder.records[0]
        self.assertEqual(record.tags, "React,Tailwind")
        self.assertEqual(record.cv_file_id, "abc")
        self.assertEqual(record.cv_url, "https://drive.google.com/file/d/abc/view")

    def test_apply_rejects_malformed_json(self):
        response = self.client.post(
            "/api/apply",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )
        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()["ok"])

    def test_export_requires_key(self):
        for params in ({}, {"key": "wrong"}):
            response = self.client.get("/api/export", params=params)
            self.assertEqual(response.status_code, 401)
            self.assertEqual(response.json(), {"ok": False, "error": "Unauthorized"})

    def test_export_auth_precedes_backend(self):
        def unreachable_recorder():
            raise ExportError("Sheets unreachable")

        self.app.dependency_overrides[get_recorder] = unreachable_recorder
        response = self.client.get("/api/export", params={"key": "wrong"})
        self.assertEqual(response.status_code, 401)

        self.app.dependency_overrides[get_recorder] = UnreachableRecorder
        response = self.client.get("/api/export", params={"key": "s3cret"})
        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"ok": False, "error": "Sheets unreachable"})

    def test_export_empty_store_is_header_only(self):
        response = self.client.get("/api/export", params={"key": "s3cret"})

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.headers["content-type"].startswith("text/csv"))
        self.assertIn("attachment", response.headers["content-disposition"])
        self.assertEqual(response.text, ",".join(EXPORT_COLUMNS) + "\n")

    def test_export_returns_submitted_applications(self):
        data = dict(APPLICATION_FIELDS, name='Jane "JD" Doe, Jr.')
        self.assertEqual(self.apply_job(data=data).status_code, 200)

        response = self.client.get("/api/export", params={"key": "s3cret"})
        rows = list(csv.reader(io.StringIO(response.text)))
        self.assertEqual(rows[0], list(EXPORT_COLUMNS))
        self.assertEqual(len(rows), 2)
        self.assertEqual(rows[1][EXPORT_COLUMNS.index("name")], 'Jane "JD" Doe, Jr.')
        self.assertEqual(
            rows[1][EXPORT_COLUMNS.index("cvUrl")],
            self.recorder.records[0].cv_url,
        )

    def test_config_error_is_reported_as_server_error(self):
        def broken_store():
            raise ConfigError("Missing GOOGLE_DRIVE_FOLDER_ID")

        self.app.dependency_overrides[get_file_store] = broken_store
        response = self.apply_job()

        self.assertEqual(response.status_code, 500)
        self.assertEqual(
            response.json(), {"ok": False, "error": "Missing GOOGLE_DRIVE_FOLDER_ID"}
        )
        self.assertEqual(self.recorder.records, [])

    def test_health_reports_backend(self):
        response = self.client.get("/api/health")
        self.assertEqual(response.json(), {"ok": True, "backend": "memory"})


if __name__ == "__main__":
    unittest.main()
