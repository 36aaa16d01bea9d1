"""End-to-end tests for the alumni portal HTTP API."""

from __future__ import annotations

import json
import tempfile
import unittest
from datetime import date
from pathlib import Path

from fastapi.testclient import TestClient

from app.database import Database
from app.filestore import JSONFileStore
from app.passwords import PasswordHasher
from app.service import create_app
from app.config import Settings
from app.sessions import SESSION_COOKIE_NAME


JANE = {"name": "Jane Doe", "email": "jane@example.com", "password": "secure123"}


class AlumniServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tempdir = tempfile.TemporaryDirectory()
        self.settings = Settings(
            database_path=Path(self._tempdir.name) / "alumni.sqlite3",
            data_dir=Path(self._tempdir.name) / "records",
            secure_cookies=False,
            hash_rounds=1000,
        )
        self.database = self._make_store()
        self.database.open()
        self.app = create_app(settings=self.settings, store=self.database)

    def tearDown(self) -> None:
        self.database.close()
        self._tempdir.cleanup()

    def _make_store(self):
        return Database(self.settings.database_path)

    def _seed_directory(self) -> None:
        self.database.insert_job(
            title="Backend Engineer", company="Acme", location="Remote", posted_date=date(2024, 5, 1)
        )
        self.database.insert_job(
            title="Data Analyst", company="Initech", location="Austin", posted_date=date(2024, 5, 3)
        )
        self.database.insert_alumni(name="Jane Doe", graduation_year=2010, major="Physics")
        self.database.insert_alumni(name="John Smith", graduation_year=2012, major="History")
        self.database.insert_alumni(name="Ana Janeway", graduation_year=2010)

    def test_registration_and_login_scenario(self) -> None:
        with TestClient(self.app) as client:
            created = client.post("/auth/register", json=JANE)
            self.assertEqual(created.status_code, 201, created.text)
            payload = created.json()
            self.assertEqual(payload["message"], "Registration successful")
            self.assertIn("id", payload)
            self.assertNotIn("password", created.text)

            duplicate = client.post("/auth/register", json=JANE)
            self.assertEqual(duplicate.status_code, 409, duplicate.text)

            wrong = client.post("/auth/login", json={"email": JANE["email"], "password": "wrong"})
            self.assertEqual(wrong.status_code, 401, wrong.text)
            self.assertNotIn("set-cookie", wrong.headers)

            login = client.post(
                "/auth/login", json={"email": JANE["email"], "password": JANE["password"]}
            )
            self.assertEqual(login.status_code, 200, login.text)
            self.assertEqual(login.json()["message"], "Login successful")
            self.assertIn("expiresAt", login.json())

            cookie = login.headers["set-cookie"]
            self.assertIn(f"{SESSION_COOKIE_NAME}=", cookie)
            self.assertIn("HttpOnly", cookie)
            self.assertIn("Path=/", cookie)
            self.assertIn("Max-Age=3600", cookie)
            self.assertIn("SameSite=lax", cookie)

    def test_login_failures_share_one_response(self) -> None:
        with TestClient(self.app) as client:
            client.post("/auth/register", json=JANE)

            wrong_password = client.post(
                "/auth/login", json={"email": JANE["email"], "password": "wrong"}
            )
            unknown_email = client.post(
                "/auth/login", json={"email": "ghost@example.com", "password": "secure123"}
            )

        self.assertEqual(wrong_password.status_code, 401)
        self.assertEqual(unknown_email.status_code, 401)
        self.assertEqual(wrong_password.json(), unknown_email.json())

    def test_missing_fields_are_reported(self) -> None:
        with TestClient(self.app) as client:
            register = client.post("/auth/register", json={"email": "jane@example.com"})
            login = client.post("/auth/login", json={"password": "secure123"})
            no_body = client.post("/auth/register")

        self.assertEqual(register.status_code, 400, register.text)
        self.assertEqual(register.json()["fields"], ["name", "password"])
        self.assertEqual(login.status_code, 400, login.text)
        self.assertEqual(login.json()["fields"], ["email"])
        self.assertEqual(no_body.status_code, 400, no_body.text)

    def test_malformed_graduation_year_is_a_bad_request(self) -> None:
        with TestClient(self.app) as client:
            response = client.post("/auth/register", json={**JANE, "graduationYear": "soon"})
            accepted = client.post(
                "/auth/register",
                json={**JANE, "email": "jane2@example.com", "graduationYear": "2010", "major": "Physics"},
            )

        self.assertEqual(response.status_code, 400, response.text)
        self.assertEqual(response.json()["fields"], ["graduationYear"])
        self.assertEqual(accepted.status_code, 201, accepted.text)
        stored = self.database.find_account_by_email("jane2@example.com")
        self.assertIsNotNone(stored)
        self.assertEqual(stored.graduation_year, 2010)
        self.assertEqual(stored.major, "Physics")

    def test_session_endpoint_and_logout(self) -> None:
        with TestClient(self.app) as client:
            anonymous = client.get("/auth/session")
            self.assertEqual(anonymous.status_code, 401, anonymous.text)

            client.post("/auth/register", json={**JANE, "graduationYear": 2010})
            client.post("/auth/login", json={"email": JANE["email"], "password": JANE["password"]})

            current = client.get("/auth/session")
            self.assertEqual(current.status_code, 200, current.text)
            self.assertEqual(
                current.json(),
                {
                    "id": current.json()["id"],
                    "name": "Jane Doe",
                    "email": "jane@example.com",
                    "graduationYear": 2010,
                    "major": None,
                },
            )

            token = client.cookies.get(SESSION_COOKIE_NAME)
            self.assertTrue(token)

            logout = client.post("/auth/logout")
            self.assertEqual(logout.status_code, 200, logout.text)

            self.assertIsNone(client.cookies.get(SESSION_COOKIE_NAME))
            revoked = client.get("/auth/session", headers={"Cookie": f"{SESSION_COOKIE_NAME}={token}"})
            self.assertEqual(revoked.status_code, 401, revoked.text)

    def test_job_board_lists_postings(self) -> None:
        with TestClient(self.app) as client:
            empty = client.get("/job-board")
            self.assertEqual(empty.status_code, 200)
            self.assertEqual(empty.json(), [])

            self._seed_directory()
            listing = client.get("/job-board")
            page = client.get("/job-board", params={"limit": 1, "offset": 1})
            invalid = client.get("/job-board", params={"limit": 0})

        self.assertEqual(listing.status_code, 200, listing.text)
        self.assertEqual(
            listing.json()[0],
            {
                "id": 1,
                "title": "Backend Engineer",
                "company": "Acme",
                "location": "Remote",
                "postedDate": "2024-05-01",
            },
        )
        self.assertEqual([job["title"] for job in page.json()], ["Data Analyst"])
        self.assertEqual(invalid.status_code, 400, invalid.text)

    def test_alumni_tracer_search(self) -> None:
        self._seed_directory()
        with TestClient(self.app) as client:
            everyone = client.get("/alumni-tracer")
            blank = client.get("/alumni-tracer", params={"query": ""})
            by_year = client.get("/alumni-tracer", params={"query": "2010"})
            by_name = client.get("/alumni-tracer", params={"query": "jOhN"})
            injection = client.get("/alumni-tracer", params={"query": "' OR '1'='1"})

        self.assertEqual(len(everyone.json()), 3)
        self.assertEqual(len(blank.json()), 3)
        self.assertEqual([record["name"] for record in by_year.json()], ["Jane Doe", "Ana Janeway"])
        self.assertEqual(
            by_name.json(),
            [{"id": 2, "name": "John Smith", "graduationYear": 2012, "major": "History"}],
        )
        self.assertEqual(injection.status_code, 200)
        self.assertEqual(injection.json(), [])

    def test_storage_failures_do_not_leak_details(self) -> None:
        with TestClient(self.app) as client:
            self.database.close()
            jobs = client.get("/job-board")
            alumni = client.get("/alumni-tracer", params={"query": "jane"})
            register = client.post("/auth/register", json=JANE)
            login = client.post("/auth/login", json={"email": JANE["email"], "password": "x"})

        for response in (jobs, alumni, register, login):
            self.assertEqual(response.status_code, 500, response.text)
            self.assertEqual(response.json(), {"detail": "The service is temporarily unavailable."})
            self.assertNotIn("sqlite", response.text.lower())

    def test_caller_supplied_store_stays_open_after_shutdown(self) -> None:
        with TestClient(self.app) as client:
            self.assertEqual(client.get("/healthz").json(), {"status": "ok"})
        self.assertTrue(self.database.is_open)


class JSONBackendServiceTests(AlumniServiceTests):
    """Runs the same HTTP scenarios against the flat-file backend."""

    def _make_store(self):
        return JSONFileStore(self.settings.data_dir)


class SecureCookieTests(unittest.TestCase):
    def test_secure_flag_and_custom_ttl(self) -> None:
        with tempfile.TemporaryDirectory() as tempdir:
            settings = Settings(
                database_path=Path(tempdir) / "alumni.sqlite3",
                same_site="strict",
                hash_rounds=1000,
            )
            app = create_app(settings=settings, hasher=PasswordHasher(rounds=1000))
            self.assertTrue(app.state.store.is_open)

            with TestClient(app) as client:
                client.post("/auth/register", json=JANE)
                login = client.post(
                    "/auth/login", json={"email": JANE["email"], "password": JANE["password"]}
                )

            self.assertEqual(login.status_code, 200, login.text)
            cookie = login.headers["set-cookie"]
            self.assertIn("Secure", cookie)
            self.assertIn("SameSite=strict", cookie)
            # The factory opened this store itself, so shutdown closes it.
            self.assertFalse(app.state.store.is_open)


class MalformedRecordTests(unittest.TestCase):
    """Hand-edited record files must surface as the generic storage failure."""

    def setUp(self) -> None:
        self._tempdir = tempfile.TemporaryDirectory()
        self.data_dir = Path(self._tempdir.name) / "records"
        self.settings = Settings(
            storage_backend="json",
            data_dir=self.data_dir,
            secure_cookies=False,
            hash_rounds=1000,
        )
        self.store = JSONFileStore(self.data_dir)
        self.store.open()
        self.app = create_app(settings=self.settings, store=self.store)

    def tearDown(self) -> None:
        self.store.close()
        self._tempdir.cleanup()

    def _write_table(self, table: str, rows: list) -> None:
        (self.data_dir / f"{table}.json").write_text(json.dumps(rows), encoding="utf-8")

    def test_job_without_posted_date_returns_json_500(self) -> None:
        self._write_table("jobs", [{"id": 1, "title": "Engineer", "company": "Acme", "location": "Remote"}])

        with TestClient(self.app) as client:
            response = client.get("/job-board")

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"detail": "The service is temporarily unavailable."})

    def test_alumni_without_id_returns_json_500(self) -> None:
        self._write_table("alumni", [{"name": "Jane Doe", "graduation_year": 2010}])

        with TestClient(self.app) as client:
            response = client.get("/alumni-tracer", params={"query": "jane"})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json(), {"detail": "The service is temporarily unavailable."})


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
