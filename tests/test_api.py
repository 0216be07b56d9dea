"""HTTP tests for the v1 routes using FastAPI's TestClient and in-memory SQLite."""

import unittest

from fastapi.testclient import TestClient

from addressbook.api.v1.deps import (
    get_contact_cache,
    get_contact_service,
    get_credential_service,
)
from addressbook.core.database import get_db
from addressbook.core.roles import Role
from addressbook.main import app
from tests.support import build_harness

PREFIX = "/api/v1"
PASSWORD = "Secret123!"


class ApiTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.h = build_harness()

        def override_db():
            yield self.h.session

        app.dependency_overrides[get_db] = override_db
        app.dependency_overrides[get_credential_service] = lambda: self.h.credentials
        app.dependency_overrides[get_contact_service] = lambda: self.h.contacts
        app.dependency_overrides[get_contact_cache] = lambda: self.h.cache
        self.client = TestClient(app)

    def tearDown(self) -> None:
        app.dependency_overrides.clear()

    def register(self, email: str = "jane@example.com", first_name: str = "Jane"):
        return self.client.post(
            f"{PREFIX}/auth/register",
            json={
                "first_name": first_name,
                "last_name": "Doe",
                "email": email,
                "password": PASSWORD,
            },
        )

    def login(self, email: str = "jane@example.com", password: str = PASSWORD):
        return self.client.post(
            f"{PREFIX}/auth/login", json={"email": email, "password": password}
        )

    def bearer(self, email: str = "jane@example.com") -> dict[str, str]:
        token = self.login(email).json()["access_token"]
        return {"Authorization": f"Bearer {token}"}


def _contact_body(**overrides: str) -> dict[str, str]:
    body = {
        "first_name": "Alice",
        "last_name": "Smith",
        "address": "12 Baker Street",
        "email": "alice@example.com",
        "phone_number": "9876543210",
    }
    body.update(overrides)
    return body


class TestHealth(ApiTestCase):
    def test_health(self) -> None:
        resp = self.client.get(f"{PREFIX}/health/")
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertEqual(data["status"], "ok")
        self.assertEqual(data["database"], "connected")
        self.assertEqual(data["cache"], "reachable")


class TestAuthRoutes(ApiTestCase):
    def test_register_returns_user_without_password(self) -> None:
        resp = self.register()
        self.assertEqual(resp.status_code, 201)
        data = resp.json()
        self.assertEqual(data["email"], "jane@example.com")
        self.assertEqual(data["role"], "User")
        self.assertNotIn("password_hash", data)

    def test_duplicate_register_is_conflict(self) -> None:
        self.register()
        resp = self.register()
        self.assertEqual(resp.status_code, 409)
        self.assertEqual(resp.json()["code"], "duplicate_identity")

    def test_register_validates_body(self) -> None:
        resp = self.client.post(
            f"{PREFIX}/auth/register",
            json={"first_name": "jane", "last_name": "Doe", "email": "x", "password": "short"},
        )
        self.assertEqual(resp.status_code, 422)

    def test_login(self) -> None:
        self.register()
        resp = self.login()
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["token_type"], "bearer")
        self.assertEqual(self.h.tokens.verify(resp.json()["access_token"]), "jane@example.com")

    def test_login_errors(self) -> None:
        self.register()
        self.assertEqual(self.login("nobody@example.com").status_code, 404)
        resp = self.login(password="Wrong123!")
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.headers["WWW-Authenticate"], "Bearer")

    def test_forgot_and_reset_password(self) -> None:
        self.register()
        resp = self.client.post(
            f"{PREFIX}/auth/forgot-password", json={"email": "jane@example.com"}
        )
        self.assertEqual(resp.status_code, 200)
        reset_token = self.h.users.find_by_email("jane@example.com").reset_token
        self.assertNotIn(reset_token, resp.text)

        body = {"new_password": "Better456#", "confirm_password": "Better456#"}
        resp = self.client.post(
            f"{PREFIX}/auth/reset-password",
            json=body,
            headers={"X-Reset-Token": reset_token},
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.login(password="Better456#").status_code, 200)

        replay = self.client.post(
            f"{PREFIX}/auth/reset-password",
            json=body,
            headers={"X-Reset-Token": reset_token},
        )
        self.assertEqual(replay.status_code, 401)
        self.assertEqual(replay.json()["code"], "invalid_token")

    def test_reset_password_rejects_mismatched_confirmation(self) -> None:
        resp = self.client.post(
            f"{PREFIX}/auth/reset-password",
            json={"new_password": "Better456#", "confirm_password": "Other456#"},
            headers={"X-Reset-Token": "whatever"},
        )
        self.assertEqual(resp.status_code, 422)

    def test_change_password(self) -> None:
        self.register()
        resp = self.client.post(
            f"{PREFIX}/auth/change-password",
            json={
                "new_password": "Better456#",
                "confirm_password": "Better456#",
                "current_password": PASSWORD,
            },
            headers=self.bearer(),
        )
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(self.login(password="Better456#").status_code, 200)

    def test_change_password_requires_bearer(self) -> None:
        resp = self.client.post(
            f"{PREFIX}/auth/change-password",
            json={"new_password": "Better456#", "confirm_password": "Better456#"},
        )
        self.assertEqual(resp.status_code, 401)


class TestContactRoutes(ApiTestCase):
    def setUp(self) -> None:
        super().setUp()
        self.register()
        self.headers = self.bearer()

    def create(self, headers: dict[str, str] | None = None, **overrides: str) -> dict:
        resp = self.client.post(
            f"{PREFIX}/contacts",
            json=_contact_body(**overrides),
            headers=headers or self.headers,
        )
        self.assertEqual(resp.status_code, 201)
        return resp.json()

    def test_requires_bearer(self) -> None:
        self.assertEqual(self.client.get(f"{PREFIX}/contacts").status_code, 401)

    def test_invalid_token(self) -> None:
        resp = self.client.get(
            f"{PREFIX}/contacts", headers={"Authorization": "Bearer nonsense"}
        )
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["code"], "invalid_token")

    def test_expired_token(self) -> None:
        self.h.clock.advance(600)
        resp = self.client.get(f"{PREFIX}/contacts", headers=self.headers)
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json()["code"], "expired_token")

    def test_create_and_get(self) -> None:
        created = self.create()
        resp = self.client.get(f"{PREFIX}/contacts/{created['id']}", headers=self.headers)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()["phone_number"], "9876543210")

    def test_create_validates_phone(self) -> None:
        resp = self.client.post(
            f"{PREFIX}/contacts",
            json=_contact_body(phone_number="1234567890"),
            headers=self.headers,
        )
        self.assertEqual(resp.status_code, 422)

    def test_list_own(self) -> None:
        self.create()
        self.create(first_name="Carol")
        resp = self.client.get(f"{PREFIX}/contacts", headers=self.headers)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.json()["contacts"]), 2)

    def test_other_user_gets_forbidden(self) -> None:
        created = self.create()
        self.register("bob@example.com", first_name="Bob")
        bob = self.bearer("bob@example.com")
        resp = self.client.get(f"{PREFIX}/contacts/{created['id']}", headers=bob)
        self.assertEqual(resp.status_code, 403)
        resp = self.client.delete(f"{PREFIX}/contacts/{created['id']}", headers=bob)
        self.assertEqual(resp.status_code, 403)
        resp = self.client.put(
            f"{PREFIX}/contacts/{created['id']}", json=_contact_body(), headers=bob
        )
        self.assertEqual(resp.status_code, 404)

    def test_update_and_delete(self) -> None:
        created = self.create()
        resp = self.client.put(
            f"{PREFIX}/contacts/{created['id']}",
            json=_contact_body(first_name="Alicia"),
            headers=self.headers,
        )
        self.assertEqual(resp.status_code, 200)
        got = self.client.get(f"{PREFIX}/contacts/{created['id']}", headers=self.headers)
        self.assertEqual(got.json()["first_name"], "Alicia")

        resp = self.client.delete(f"{PREFIX}/contacts/{created['id']}", headers=self.headers)
        self.assertEqual(resp.status_code, 200)
        got = self.client.get(f"{PREFIX}/contacts/{created['id']}", headers=self.headers)
        self.assertEqual(got.status_code, 404)

    def test_list_all_is_admin_only(self) -> None:
        self.create()
        resp = self.client.get(f"{PREFIX}/contacts/all", headers=self.headers)
        self.assertEqual(resp.status_code, 403)
        self.h.credentials.assign_role("jane@example.com", Role.ADMIN)
        resp = self.client.get(f"{PREFIX}/contacts/all", headers=self.headers)
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(len(resp.json()["contacts"]), 1)


if __name__ == "__main__":
    unittest.main()
