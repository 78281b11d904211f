import importlib
import json
import sqlite3
import sys
import tempfile
import unittest

from fastapi.testclient import TestClient

ORIGIN = {"origin": "http://testserver"}


class AuthCsrfIntegrationTests(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.db_path = f"{self.tmp.name}/test.db"

        import config
        import db
        import security

        self._config = config
        self._db = db
        self._security = security
        self._old_config_db_path = config.DB_PATH
        self._old_db_db_path = db.DB_PATH

        config.DB_PATH = self.db_path
        db.DB_PATH = self.db_path
        security._reset_rate_limits()

        sys.modules.pop("main", None)
        main = importlib.import_module("main")
        self.client = TestClient(main.app)

    def tearDown(self):
        self.client.close()
        self._config.DB_PATH = self._old_config_db_path
        self._db.DB_PATH = self._old_db_db_path
        sys.modules.pop("main", None)
        self.tmp.cleanup()

    def _signup(self, email="alice@example.com", **overrides):
        data = {
            "first_name": "Alice",
            "last_name": "Smith",
            "gender": "female",
            "birthday": "1990-05-01",
            "email": email,
            "password": "Password123",
            "confirm_password": "Password123",
        }
        data.update(overrides)
        return self.client.post("/signup", headers=ORIGIN, data=data, follow_redirects=False)

    def _stored(self, key):
        with sqlite3.connect(self.db_path) as conn:
            row = conn.execute("SELECT value FROM local_storage WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def test_fresh_install_redirects_to_signup(self):
        resp = self.client.get("/dashboard", follow_redirects=False)
        self.assertEqual(resp.status_code, 303)
        self.assertEqual(resp.headers["location"], "/signup")

        resp = self.client.get("/login", follow_redirects=False)
        self.assertEqual(resp.status_code, 303)
        self.assertEqual(resp.headers["location"], "/signup")

    def test_signup_starts_session_and_greets_new_user(self):
        resp = self._signup()
        self.assertEqual(resp.status_code, 303)
        self.assertEqual(resp.headers["location"], "/dashboard")

        page = self.client.get("/dashboard")
        self.assertEqual(page.status_code, 200)
        self.assertIn("Nice to meet you, Alice!", page.text)

        self.assertEqual(self._stored("navigationSource"), "signup")
        users = json.loads(self._stored("users"))
        self.assertEqual(len(users), 1)
        self.assertEqual(users[0]["name"], "Alice Smith")
        self.assertEqual(json.loads(self._stored("currentUser"))["email"], "alice@example.com")

    def test_login_after_logout_says_welcome_back(self):
        self._signup()
        resp = self.client.post("/logout", headers=ORIGIN, follow_redirects=False)
        self.assertEqual(resp.status_code, 303)
        self.assertIsNone(self._stored("currentUser"))
        self.assertIsNone(self._stored("navigationSource"))

        resp = self.client.post(
            "/login",
            headers=ORIGIN,
            data={"email": "alice@example.com", "password": "Password123"},
            follow_redirects=False,
        )
        self.assertEqual(resp.headers["location"], "/dashboard")
        self.assertIn("Welcome back, Alice!", self.client.get("/dashboard").text)
        self.assertEqual(self._stored("navigationSource"), "login")

    def test_login_with_wrong_password_is_rejected(self):
        self._signup()
        self.client.post("/logout", headers=ORIGIN)
        resp = self.client.post(
            "/login",
            headers=ORIGIN,
            data={"email": "alice@example.com", "password": "Wrong1234"},
            follow_redirects=False,
        )
        self.assertEqual(resp.status_code, 303)
        self.assertIn("/login?error=Invalid+credentials", resp.headers["location"])
        self.assertIsNone(self._stored("currentUser"))

    def test_duplicate_email_signup_is_rejected(self):
        self._signup()
        resp = self._signup(first_name="Other")
        self.assertIn("/signup?error=Email+already+registered", resp.headers["location"])
        self.assertEqual(len(json.loads(self._stored("users"))), 1)

    def test_signup_validation_errors(self):
        cases = [
            ({"email": "not-an-email"}, "valid+email"),
            ({"password": "short1A", "confirm_password": "short1A"}, "at+least+8"),
            ({"password": "password123", "confirm_password": "password123"}, "uppercase"),
            ({"confirm_password": "Password124"}, "do+not+match"),
            ({"birthday": "2020-01-01"}, "18+years"),
            ({"gender": "robot"}, "gender"),
            ({"first_name": "  "}, "name+are+required"),
        ]
        for overrides, fragment in cases:
            with self.subTest(overrides=overrides):
                self._security._reset_rate_limits()
                resp = self._signup(**overrides)
                self.assertEqual(resp.status_code, 303)
                self.assertTrue(resp.headers["location"].startswith("/signup?error="))
                self.assertIn(fragment, resp.headers["location"])
        self.assertIsNone(self._stored("users"))

    def test_api_requires_auth(self):
        self._signup()
        self.client.post("/logout", headers=ORIGIN)
        resp = self.client.get("/api/entries")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json(), {"error": "unauthorized"})

        resp = self.client.get("/medications", follow_redirects=False)
        self.assertEqual(resp.headers["location"], "/login")

    def test_cross_origin_post_is_refused(self):
        self._signup()
        resp = self.client.post(
            "/logout", headers={"origin": "http://evil.example"}, follow_redirects=False
        )
        self.assertEqual(resp.status_code, 303)
        self.assertIn("Forbidden", resp.headers["location"])
        self.assertIsNotNone(self._stored("currentUser"))

    def test_api_post_requires_csrf_header(self):
        self._signup()

        without_csrf = self.client.post(
            "/api/medications",
            headers=ORIGIN,
            json={"name": "Ibuprofen", "time": "08:00"},
        )
        self.assertEqual(without_csrf.status_code, 403)
        self.assertEqual(without_csrf.json(), {"error": "forbidden"})

        csrf = self.client.cookies.get("csrf_token")
        self.assertTrue(csrf)

        with_csrf = self.client.post(
            "/api/medications",
            headers={**ORIGIN, "x-csrf-token": csrf},
            json={"name": "Ibuprofen", "time": "08:00"},
        )
        self.assertEqual(with_csrf.status_code, 200)
        payload = with_csrf.json()
        self.assertTrue(payload.get("ok"))
        self.assertEqual(payload["medication"]["name"], "Ibuprofen")

    def test_session_endpoint_hides_password(self):
        self.assertEqual(
            self.client.get("/api/session").json(),
            {"currentUser": None, "navigationSource": None, "userCount": 0},
        )
        self._signup()
        body = self.client.get("/api/session").json()
        self.assertEqual(body["currentUser"]["email"], "alice@example.com")
        self.assertNotIn("password", body["currentUser"])
        self.assertEqual(body["navigationSource"], "signup")
        self.assertEqual(body["userCount"], 1)

    def test_login_rate_limit(self):
        self._signup()
        self.client.post("/logout", headers=ORIGIN)
        for _ in range(10):
            self.client.post(
                "/login", headers=ORIGIN, data={"email": "x@example.com", "password": "nope"}
            )
        resp = self.client.post(
            "/login",
            headers=ORIGIN,
            data={"email": "alice@example.com", "password": "Password123"},
            follow_redirects=False,
        )
        self.assertIn("Too+many+attempts", resp.headers["location"])
        self.assertIsNone(self._stored("currentUser"))

    def test_signup_rate_limit(self):
        for n in range(5):
            self._signup(email=f"user{n}@example.com")
        resp = self._signup(email="late@example.com")
        self.assertIn("/signup?error=Too+many+attempts", resp.headers["location"])
        self.assertEqual(len(json.loads(self._stored("users"))), 5)

    def test_session_survives_app_restart(self):
        self._signup()
        self.client.close()
        sys.modules.pop("main", None)
        main = importlib.import_module("main")
        self.client = TestClient(main.app)
        body = self.client.get("/api/session").json()
        self.assertEqual(body["currentUser"]["email"], "alice@example.com")
        self.assertEqual(body["navigationSource"], "signup")


if __name__ == "__main__":
    unittest.main()
