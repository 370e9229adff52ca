# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Authentication and account self-service.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from BCRYPT_ROUNDS, default 12)
- Minimum 6 characters required
- Login failures use one generic message for unknown email and wrong password
- Session tokens managed separately (see session_service.py)
"""

import bcrypt
from flask import current_app

from ..extensions import db
from ..models import User, ROLE_USER, ROLE_ADMIN, ROLE_LOGISTICS
from ..schemas import RegistrationRequest, LoginRequest, ProfileUpdateRequest, PasswordChangeRequest
from ..validation import ValidationError, ConflictError, AuthError
from storefront.time_utils import utcnow


MIN_PASSWORD_LENGTH = 6

# Where each role lands after login
LANDING_PATHS = {
    ROLE_USER: "/api/products",
    ROLE_LOGISTICS: "/api/admin/orders",
    ROLE_ADMIN: "/api/admin/inventory",
}


class MissingFieldsError(ValidationError):
    default_message = "All fields are required."


class WeakPasswordError(ValidationError):
    default_message = f"Password must be at least {MIN_PASSWORD_LENGTH} characters."


class PasswordMismatchError(ValidationError):
    default_message = "New passwords do not match."


class NoOpChangeError(ValidationError):
    default_message = "New password cannot be the same as old password."


class EmailExistsError(ConflictError):
    default_message = "Email already exists."


class InvalidCredentialsError(AuthError):
    default_message = "Invalid email or password."


class WrongPasswordError(AuthError):
    # The caller is logged in; this is a form error, not a session error
    status_code = 400
    default_message = "Old password is incorrect."


def validate_password_strength(password: str, message: str | None = None) -> None:
    """Raises WeakPasswordError if password is shorter than MIN_PASSWORD_LENGTH."""
    if len(password) < MIN_PASSWORD_LENGTH:
        raise WeakPasswordError(message)


def hash_password(password: str) -> str:
    """Hash password using bcrypt; cost factor comes from app config."""
    rounds = current_app.config.get("BCRYPT_ROUNDS", 12)
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Verify password against bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        # Malformed stored hash
        return False


def email_taken(email: str, exclude_user_id: int | None = None) -> bool:
    query = db.session.query(User.id).filter(User.email == email)
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    return query.first() is not None


def create_user(
    username: str,
    email: str,
    password: str,
    role: str = ROLE_USER,
    address: str = "",
    contact: str = "",
) -> User:
    """
    Create a user row with a bcrypt password hash.

    Raises:
        WeakPasswordError: password shorter than MIN_PASSWORD_LENGTH
        EmailExistsError: email already registered
    """
    validate_password_strength(password)

    if email_taken(email):
        raise EmailExistsError()

    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=role,
        address=address or "",
        contact=contact or "",
    )

    db.session.add(user)
    db.session.commit()
    return user


def register(req: RegistrationRequest) -> User:
    """
    Public self-registration.

    Every field is required. Accounts created here are always customers;
    staff roles are granted by an administrator.
    """
    if not all([req.username, req.email, req.password, req.address, req.contact]):
        raise MissingFieldsError()

    if req.role and req.role != ROLE_USER:
        raise ValidationError("Only customer accounts can be self-registered.")

    validate_password_strength(req.password)

    if email_taken(req.email):
        raise EmailExistsError("Email already exists, please login.")

    return create_user(
        username=req.username,
        email=req.email,
        password=req.password,
        role=ROLE_USER,
        address=req.address,
        contact=req.contact,
    )


def authenticate(req: LoginRequest) -> User:
    """
    Check email + password in one step.

    Unknown email and wrong password are indistinguishable to the caller.
    Updates last_login_at on success.
    """
    if not req.email or not req.password:
        raise MissingFieldsError()

    user = db.session.query(User).filter(User.email == req.email).first()

    if not user or not verify_password(req.password, user.password_hash):
        raise InvalidCredentialsError()

    user.last_login_at = utcnow()
    db.session.commit()
    return user


def landing_path(user: User) -> str:
    """Post-login destination by role; unknown roles go to inventory like admins."""
    return LANDING_PATHS.get(user.role, LANDING_PATHS[ROLE_ADMIN])


def update_profile(user_id: int, req: ProfileUpdateRequest) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise AuthError("Please log in to view this page.")

    if not all([req.username, req.email, req.contact, req.address]):
        raise MissingFieldsError()

    if email_taken(req.email, exclude_user_id=user_id):
        raise EmailExistsError("Email already exists. Please use another email.")

    user.username = req.username
    user.email = req.email
    user.contact = req.contact
    user.address = req.address
    db.session.commit()
    return user


def change_password(user_id: int, req: PasswordChangeRequest) -> User:
    """
    Replace the caller's password.

    Check order: required fields, confirmation match, length, current
    password, then "same as old".
    """
    if not all([req.old_password, req.new_password, req.confirm_password]):
        raise MissingFieldsError()

    if req.new_password != req.confirm_password:
        raise PasswordMismatchError()

    validate_password_strength(req.new_password, f"New password must be at least {MIN_PASSWORD_LENGTH} characters.")

    user = db.session.get(User, user_id)
    if not user:
        raise AuthError("Please log in to view this page.")

    if not verify_password(req.old_password, user.password_hash):
        raise WrongPasswordError()

    if req.old_password == req.new_password:
        raise NoOpChangeError()

    user.password_hash = hash_password(req.new_password)
    db.session.commit()
    return user
