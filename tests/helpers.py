"""Base test case for exercising the HTTP routes against a mock Firestore."""

import unittest
from unittest.mock import patch

from flashplan import create_app
from tests.conftest import MockArrayRemove, MockArrayUnion, make_mock_db


class FirebaseRouteTestCase(unittest.TestCase):
    """Runs the app with Firebase replaced by mockfirestore."""

    def setUp(self):
        """Set up a test client and a mock Firestore shared by every route."""
        self.db = make_mock_db()

        patchers = {
            "init_app": patch("firebase_admin.initialize_app"),
            "firestore_client": patch(
                "firebase_admin.firestore.client", return_value=self.db
            ),
            "array_union": patch("firebase_admin.firestore.ArrayUnion", MockArrayUnion),
            "array_remove": patch(
                "firebase_admin.firestore.ArrayRemove", MockArrayRemove
            ),
            "verify_id_token": patch("firebase_admin.auth.verify_id_token"),
        }

        self.mocks = {name: p.start() for name, p in patchers.items()}
        for p in patchers.values():
            self.addCleanup(p.stop)

        self.app = create_app({"TESTING": True, "SERVER_NAME": "localhost"})
        self.client = self.app.test_client()

    def add_user(self, uid, display_name=None, email=None):
        data = {"email": email or f"{uid}@example.com"}
        if display_name:
            data["displayName"] = display_name
        self.db.collection("users").document(uid).set(data)

    def login(self, uid, display_name=None):
        """Open a session for ``uid``, creating the profile if needed."""
        if not self.db.collection("users").document(uid).get().exists:
            self.add_user(uid, display_name)
        with self.client.session_transaction() as sess:
            sess["user_id"] = uid

    def assert_error(self, response, status_code, kind):
        self.assertEqual(response.status_code, status_code)
        payload = response.get_json()
        self.assertEqual(payload["status"], "error")
        self.assertEqual(payload["error"], kind)
