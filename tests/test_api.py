import unittest

from db_case import DatabaseTestCase

from fastapi.testclient import TestClient

from db.init import get_db
from main import app
from services.seed import seed_memberships, seed_users


class TestGymFlowApi(DatabaseTestCase):
    def setUp(self):
        super().setUp()
        seed_users(self.db)
        seed_memberships(self.db)

        def override_get_db():
            db = self.SessionLocal()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        self.client = TestClient(app)

    def tearDown(self):
        app.dependency_overrides.clear()
        super().tearDown()

    def token_for(self, email, password):
        response = self.client.post("/auth/login", json={"email": email, "password": password})
        self.assertEqual(response.status_code, 200, response.text)
        return {"Authorization": f"Bearer {response.json()['token']}"}

    def test_health(self):
        self.assertEqual(self.client.get("/health").json(), {"status": "ok"})

    def test_protected_route_needs_a_token(self):
        response = self.client.post("/attendances/check-in", json={"userId": "x", "type": "gym"})
        self.assertEqual(response.status_code, 401)

    def test_client_cannot_check_anyone_in(self):
        headers = self.token_for("client@example.com", "client123")
        response = self.client.post("/attendances/check-in", json={"userId": "x", "type": "gym"}, headers=headers)
        self.assertEqual(response.status_code, 403)

    def test_front_desk_flow(self):
        admin = self.token_for("admin@example.com", "admin123")
        desk = self.token_for("receptionist@example.com", "recep123")

        registered = self.client.post(
            "/auth/register",
            json={"email": "walkin@example.com", "fullName": "Walk In", "age": 33, "password": "walkin123"},
        )
        self.assertEqual(registered.status_code, 201, registered.text)
        user_id = registered.json()["id"]

        # no passes yet
        response = self.client.post("/attendances/check-in", json={"userId": user_id, "type": "gym"}, headers=desk)
        self.assertEqual(response.status_code, 403)

        subscription = self.client.get(f"/subscriptions/user/{user_id}", headers=desk).json()
        membership_id = next(m["id"] for m in self.client.get("/memberships", headers=desk).json() if m["name"] == "Basic Monthly")
        response = self.client.post(
            f"/subscriptions/{subscription['id']}/memberships", json={"membershipId": membership_id}, headers=desk
        )
        self.assertEqual(response.status_code, 200, response.text)

        response = self.client.post("/attendances/check-in", json={"userId": user_id, "type": "gym"}, headers=desk)
        self.assertEqual(response.status_code, 201, response.text)
        self.assertTrue(response.json()["isActive"])

        response = self.client.post("/attendances/check-in", json={"userId": user_id, "type": "gym"}, headers=desk)
        self.assertEqual(response.status_code, 409)

        status = self.client.get(f"/attendances/status/{user_id}", headers=admin).json()
        self.assertTrue(status["isInside"])
        self.assertEqual(status["availableAttendances"], {"gym": 14, "classes": 8})

        active = self.client.get("/attendances/active", headers=admin).json()
        self.assertEqual([a["user"]["email"] for a in active], ["walkin@example.com"])

        response = self.client.post("/attendances/check-out", json={"userId": user_id}, headers=desk)
        self.assertEqual(response.status_code, 200, response.text)
        self.assertFalse(response.json()["isActive"])

        response = self.client.post("/attendances/check-out", json={"userId": user_id}, headers=desk)
        self.assertEqual(response.status_code, 404)

    def test_unknown_user_status(self):
        admin = self.token_for("admin@example.com", "admin123")
        response = self.client.get("/attendances/status/missing-id", headers=admin)
        self.assertEqual(response.status_code, 404)


if __name__ == "__main__":
    unittest.main()
