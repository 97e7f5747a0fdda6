import pytest
from fastapi.testclient import TestClient

from etuition_backend.database import models as db_models
from etuition_backend.database.db_enums import UserStatus
from tests.constants import TEST_PASSWORD_STUDENT, TEST_PASSWORD_TUTOR
from tests.database import factories
from tests.utils import auth_headers_for_user


@pytest.mark.anyio
class TestAuthAPI:
    """
    Tests for the authentication API endpoints (/auth).
    - Login tests USE EXISTING fixtures from conftest.py.
    - Signup tests CREATE new data to test the creation process.
    """

    # --- Login Tests ---

    async def test_login_student_success(
        self,
        client: TestClient,
        test_student: db_models.Users
    ):
        print(f"Attempting login for student: {test_student.email}")
        response = client.post(
            "/auth/login",
            data={"username": test_student.email, "password": TEST_PASSWORD_STUDENT}
        )

        assert response.status_code == 200, response.json()
        token_data = response.json()
        assert "access_token" in token_data
        assert token_data["token_type"] == "bearer"

    async def test_login_is_case_insensitive(
        self,
        client: TestClient,
        test_tutor_user: db_models.Users
    ):
        response = client.post(
            "/auth/login",
            data={"username": test_tutor_user.email.upper(), "password": TEST_PASSWORD_TUTOR}
        )
        assert response.status_code == 200, response.json()

    async def test_login_wrong_password(
        self,
        client: TestClient,
        test_student: db_models.Users
    ):
        response = client.post(
            "/auth/login",
            data={"username": test_student.email, "password": "not-the-password"}
        )
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized", "message": "Incorrect email or password"}
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_login_blocked_user(self, client: TestClient, seed_session):
        blocked = factories.StudentUserFactory(status=UserStatus.BLOCKED.value)
        response = client.post(
            "/auth/login",
            data={"username": blocked.email, "password": TEST_PASSWORD_STUDENT}
        )
        assert response.status_code == 403
        assert response.json()["error"] == "Forbidden"

    # --- Signup Tests ---

    async def test_signup_student(self, client: TestClient):
        payload = {
            "email": "Fresh.Student@Example.com",
            "password": "fresh-pass-123",
            "name": "Fresh Student",
        }
        response = client.post("/auth/signup", json=payload)

        assert response.status_code == 201, response.json()
        user = response.json()
        assert user["email"] == "fresh.student@example.com"
        assert user["role"] == "student"
        assert user["status"] == "active"
        assert "password" not in user

        # the new account can log in straight away
        login = client.post("/auth/login", data={"username": user["email"], "password": "fresh-pass-123"})
        assert login.status_code == 200

    async def test_signup_duplicate_email(
        self,
        client: TestClient,
        test_student: db_models.Users
    ):
        payload = {"email": test_student.email, "password": "another-pass", "name": "Copycat"}
        response = client.post("/auth/signup", json=payload)
        assert response.status_code == 409
        assert response.json()["error"] == "Conflict"

    async def test_signup_as_admin_is_rejected(self, client: TestClient):
        payload = {"email": "boss@example.com", "password": "boss-pass-123", "name": "Boss", "role": "admin"}
        response = client.post("/auth/signup", json=payload)
        assert response.status_code == 422
        assert response.json()["error"] == "BadRequest"

    # --- Token Tests ---

    async def test_missing_token(self, client: TestClient):
        response = client.get("/users/me")
        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"

    async def test_garbage_token(self, client: TestClient):
        response = client.get("/users/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    async def test_token_of_blocked_user(self, client: TestClient, seed_session):
        blocked = factories.StudentUserFactory(status=UserStatus.BLOCKED.value)
        response = client.get("/users/me", headers=auth_headers_for_user(blocked))
        assert response.status_code == 401
