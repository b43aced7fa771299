"""Tests for the plan blueprint."""

import datetime
import unittest

from tests.helpers import FirebaseRouteTestCase

MOCK_USER_ID = "user1"


class PlanRoutesFirebaseTestCase(FirebaseRouteTestCase):
    def setUp(self):
        super().setUp()
        self.login(MOCK_USER_ID, "Pat")
        response = self.client.post(
            "/plan/",
            json={
                "title": "Picnic",
                "when": "2024-06-01T19:00:00Z",
                "location": "Park",
            },
        )
        self.assertEqual(response.status_code, 201)
        self.plan_id = response.get_json()["plan_id"]

    def test_create_returns_share_url(self):
        response = self.client.get(f"/plan/{self.plan_id}")

        payload = response.get_json()
        self.assertEqual(
            payload["share_url"], f"https://flashplan.example/p/{self.plan_id}"
        )
        self.assertEqual(payload["plan"]["title"], "Picnic")
        self.assertEqual(
            datetime.datetime.fromisoformat(payload["plan"]["when"]),
            datetime.datetime(2024, 6, 1, 19, 0, tzinfo=datetime.timezone.utc),
        )

    def test_list_plans(self):
        response = self.client.get("/plan/")

        plans = response.get_json()["plans"]
        self.assertEqual([p["id"] for p in plans], [self.plan_id])

    def test_create_requires_valid_time(self):
        for when in (None, "next friday"):
            with self.subTest(when=when):
                response = self.client.post(
                    "/plan/", json={"title": "Dinner", "when": when}
                )
                self.assert_error(response, 400, "invalid_input")

    def test_create_requires_title(self):
        response = self.client.post(
            "/plan/", json={"title": "", "when": "2024-06-01T19:00:00"}
        )
        self.assert_error(response, 400, "invalid_input")

    def test_vote_and_tally(self):
        response = self.client.put(f"/plan/{self.plan_id}/vote", json={"vote": "yes"})
        self.assertEqual(
            response.get_json()["tally"], {"yes": 1, "maybe": 0, "no": 0}
        )

        response = self.client.put(f"/plan/{self.plan_id}/vote", json={"vote": "no"})
        self.assertEqual(response.get_json()["vote"], "no")

        payload = self.client.get(f"/plan/{self.plan_id}").get_json()
        self.assertEqual(payload["tally"], {"yes": 0, "maybe": 0, "no": 1})
        self.assertEqual(payload["my_vote"], "no")
        self.assertEqual(payload["votes"][0]["name"], "Pat")

    def test_no_vote_yet(self):
        payload = self.client.get(f"/plan/{self.plan_id}").get_json()

        self.assertIsNone(payload["my_vote"])
        self.assertEqual(payload["votes"], [])

    def test_invalid_vote(self):
        response = self.client.put(
            f"/plan/{self.plan_id}/vote", json={"vote": "perhaps"}
        )
        self.assert_error(response, 400, "invalid_input")

    def test_missing_plan(self):
        self.assert_error(self.client.get("/plan/nope"), 404, "not_found")
        response = self.client.put("/plan/nope/vote", json={"vote": "yes"})
        self.assert_error(response, 404, "not_found")


if __name__ == "__main__":
    unittest.main()
