import importlib
import sys
import tempfile
import unittest

from fastapi.testclient import TestClient

ORIGIN = {"origin": "http://testserver"}


class AppTestCase(unittest.TestCase):
    """Fresh app on a temporary database, with one signed-up user."""

    email = "alice@example.com"

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.db_path = f"{self.tmp.name}/test.db"

        import config
        import db
        import security

        self._config = config
        self._db = db
        self._old_config_db_path = config.DB_PATH
        self._old_db_db_path = db.DB_PATH

        config.DB_PATH = self.db_path
        db.DB_PATH = self.db_path
        security._reset_rate_limits()

        sys.modules.pop("main", None)
        self.main = importlib.import_module("main")
        self.client = TestClient(self.main.app)
        resp = self.client.post(
            "/signup",
            headers=ORIGIN,
            data={
                "first_name": "Alice",
                "last_name": "Smith",
                "gender": "female",
                "birthday": "1990-05-01",
                "email": self.email,
                "password": "Password123",
                "confirm_password": "Password123",
            },
            follow_redirects=False,
        )
        self.assertEqual(resp.headers["location"], "/dashboard")
        self.api_headers = {**ORIGIN, "x-csrf-token": self.client.cookies.get("csrf_token")}

    def tearDown(self):
        self.client.close()
        self._config.DB_PATH = self._old_config_db_path
        self._db.DB_PATH = self._old_db_db_path
        sys.modules.pop("main", None)
        self.tmp.cleanup()

    @property
    def storage(self):
        return self.main.app.state.storage
