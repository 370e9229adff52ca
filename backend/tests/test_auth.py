"""
Authentication, session and profile tests.
"""

import pytest

from storefront.models import User, SessionToken
from storefront.schemas import RegistrationRequest, PasswordChangeRequest
from storefront.services import auth_service, session_service
from storefront.services.auth_service import (
    WeakPasswordError,
    MissingFieldsError,
    EmailExistsError,
    PasswordMismatchError,
    WrongPasswordError,
    NoOpChangeError,
)

from conftest import DEFAULT_PASSWORD, auth_headers, login_token


REGISTRATION = {
    "username": "dave",
    "email": "dave@store.test",
    "password": "hunter22",
    "address": "3 High St",
    "contact": "98765432",
}


# =============================================================================
# REGISTRATION
# =============================================================================


class TestRegistration:

    def test_register_creates_customer(self, client, db_session):
        resp = client.post("/api/auth/register", json={**REGISTRATION, "role": "user"})

        assert resp.status_code == 201
        data = resp.get_json()
        assert data["user"]["role"] == "user"
        assert data["redirect"] == "/api/auth/login"
        assert "password_hash" not in data["user"]

        stored = db_session.query(User).filter_by(email="dave@store.test").one()
        assert stored.password_hash != "hunter22"
        assert auth_service.verify_password("hunter22", stored.password_hash)

    def test_weak_password_returns_form_without_password(self, client, db_session):
        resp = client.post("/api/auth/register", json={**REGISTRATION, "password": "12345"})

        assert resp.status_code == 400
        data = resp.get_json()
        assert data["error"] == "Password must be at least 6 characters."
        assert data["form"]["username"] == "dave"
        assert data["form"]["email"] == "dave@store.test"
        assert "password" not in data["form"]
        assert db_session.query(User).count() == 0

    def test_non_string_password_returns_form(self, client, db_session):
        resp = client.post("/api/auth/register", json={**REGISTRATION, "password": 1234567})

        assert resp.status_code == 400
        data = resp.get_json()
        assert data["error"] == "password must be a string"
        assert data["form"]["username"] == "dave"
        assert "password" not in data["form"]
        assert db_session.query(User).count() == 0

    def test_weak_password_service_error(self, app, db_session):
        with pytest.raises(WeakPasswordError):
            auth_service.register(RegistrationRequest(**{**REGISTRATION, "password": "12345"}))

    @pytest.mark.parametrize("missing", ["username", "email", "password", "address", "contact"])
    def test_all_fields_required(self, app, db_session, missing):
        with pytest.raises(MissingFieldsError):
            auth_service.register(RegistrationRequest(**{**REGISTRATION, missing: None}))

    def test_duplicate_email(self, client, customer):
        resp = client.post("/api/auth/register", json={**REGISTRATION, "email": customer.email})

        assert resp.status_code == 409
        assert resp.get_json()["error"] == "Email already exists, please login."

    def test_cannot_self_register_as_admin(self, client, db_session):
        resp = client.post("/api/auth/register", json={**REGISTRATION, "role": "admin"})

        assert resp.status_code == 400
        assert db_session.query(User).count() == 0


# =============================================================================
# LOGIN / LOGOUT
# =============================================================================


class TestLogin:

    @pytest.mark.parametrize(
        "role,landing",
        [
            ("user", "/api/products"),
            ("logistics", "/api/admin/orders"),
            ("admin", "/api/admin/inventory"),
        ],
    )
    def test_landing_by_role(self, client, make_user, role, landing):
        user = make_user(f"{role}1", role=role)

        resp = client.post("/api/auth/login", json={"email": user.email, "password": DEFAULT_PASSWORD})

        assert resp.status_code == 200
        data = resp.get_json()
        assert data["redirect"] == landing
        assert data["token"]

    def test_login_sets_last_login(self, client, customer, db_session):
        assert customer.last_login_at is None

        client.post("/api/auth/login", json={"email": customer.email, "password": DEFAULT_PASSWORD})

        db_session.expire_all()
        assert db_session.get(User, customer.id).last_login_at is not None

    def test_wrong_password_and_unknown_email_look_the_same(self, client, customer):
        wrong = client.post("/api/auth/login", json={"email": customer.email, "password": "nope-nope"})
        unknown = client.post("/api/auth/login", json={"email": "ghost@store.test", "password": "nope-nope"})

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.get_json()["error"] == unknown.get_json()["error"] == "Invalid email or password."

    def test_non_string_password_rejected(self, client, customer):
        resp = client.post("/api/auth/login", json={"email": customer.email, "password": 123456})

        assert resp.status_code == 400
        assert resp.get_json()["error"] == "password must be a string"

    def test_token_roundtrip_and_logout(self, client, customer):
        token = client.post(
            "/api/auth/login", json={"email": customer.email, "password": DEFAULT_PASSWORD}
        ).get_json()["token"]

        me = client.get("/api/auth/me", headers=auth_headers(token))
        assert me.status_code == 200
        assert me.get_json()["user"]["id"] == customer.id

        assert client.post("/api/auth/logout", headers=auth_headers(token)).status_code == 200
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401

    def test_garbage_token_rejected(self, client, db_session):
        resp = client.get("/api/auth/me", headers=auth_headers("not-a-real-token"))
        assert resp.status_code == 401


class TestSessions:

    def test_token_stored_hashed(self, app, customer, db_session):
        session, token = session_service.create_session(user_id=customer.id)

        assert session.token_hash == session_service.hash_token(token)
        assert db_session.query(SessionToken).filter_by(token_hash=token).count() == 0

    def test_idle_session_is_revoked(self, app, customer, db_session):
        from datetime import timedelta

        session, token = session_service.create_session(user_id=customer.id)
        session.last_used_at = session.last_used_at - timedelta(hours=3)
        db_session.commit()

        assert session_service.validate_session(token) is None
        db_session.expire_all()
        assert db_session.get(SessionToken, session.id).is_revoked is True


# =============================================================================
# PROFILE / PASSWORD
# =============================================================================


class TestProfile:

    def test_update_profile(self, client, customer_headers):
        resp = client.put(
            "/api/profile",
            json={"username": "caroline", "email": "caroline@store.test", "contact": "81112222", "address": "9 Elm"},
            headers=customer_headers,
        )

        assert resp.status_code == 200
        assert resp.get_json()["user"]["username"] == "caroline"

    def test_update_profile_email_taken(self, client, customer_headers, make_user):
        other = make_user("oscar")

        resp = client.put(
            "/api/profile",
            json={"username": "carol", "email": other.email, "contact": "1", "address": "2"},
            headers=customer_headers,
        )

        assert resp.status_code == 409

    def test_update_profile_requires_all_fields(self, client, customer_headers):
        resp = client.put("/api/profile", json={"username": "carol"}, headers=customer_headers)
        assert resp.status_code == 400


class TestChangePassword:

    @pytest.mark.parametrize(
        "payload,error",
        [
            ({"old_password": DEFAULT_PASSWORD, "new_password": "abcdef"}, MissingFieldsError),
            ({"old_password": DEFAULT_PASSWORD, "new_password": "abcdef", "confirm_password": "abcdeg"}, PasswordMismatchError),
            ({"old_password": DEFAULT_PASSWORD, "new_password": "abc", "confirm_password": "abc"}, WeakPasswordError),
            ({"old_password": "wrong-one", "new_password": "abcdef", "confirm_password": "abcdef"}, WrongPasswordError),
            ({"old_password": DEFAULT_PASSWORD, "new_password": DEFAULT_PASSWORD, "confirm_password": DEFAULT_PASSWORD}, NoOpChangeError),
        ],
    )
    def test_errors(self, app, customer, payload, error):
        with pytest.raises(error):
            auth_service.change_password(customer.id, PasswordChangeRequest.from_payload(payload))

    def test_success_revokes_other_sessions(self, client, customer, customer_headers):
        other_token = login_token(customer)

        resp = client.post(
            "/api/profile/password",
            json={"old_password": DEFAULT_PASSWORD, "new_password": "brand-new", "confirm_password": "brand-new"},
            headers=customer_headers,
        )

        assert resp.status_code == 200
        assert resp.get_json()["sessions_revoked"] == 1
        assert client.get("/api/auth/me", headers=customer_headers).status_code == 200
        assert client.get("/api/auth/me", headers=auth_headers(other_token)).status_code == 401

        login = client.post("/api/auth/login", json={"email": customer.email, "password": "brand-new"})
        assert login.status_code == 200

    def test_non_string_new_password_rejected(self, client, customer_headers):
        resp = client.post(
            "/api/profile/password",
            json={"old_password": DEFAULT_PASSWORD, "new_password": 123456, "confirm_password": 123456},
            headers=customer_headers,
        )

        assert resp.status_code == 400
        assert resp.get_json()["error"] == "new_password must be a string"

    def test_wrong_old_password_is_a_form_error(self, client, customer_headers):
        resp = client.post(
            "/api/profile/password",
            json={"old_password": "wrong-one", "new_password": "abcdef", "confirm_password": "abcdef"},
            headers=customer_headers,
        )

        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Old password is incorrect."
