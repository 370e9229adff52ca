"""
Administrator user management.

Invariant: the set of users with role 'admin' never becomes empty through an
edit or a delete made here.
"""
from __future__ import annotations

from sqlalchemy import or_

from ..extensions import db
from ..models import User, Order, CartItem, SessionToken, ROLES, ROLE_ADMIN
from ..schemas import AdminUserRequest, UserQuery
from ..validation import ValidationError, NotFoundError, InvariantViolation
from .auth_service import MissingFieldsError, EmailExistsError, create_user, email_taken


USER_SORTS = {
    "id_desc": lambda: User.id.desc(),
    "id_asc": lambda: User.id.asc(),
    "name_asc": lambda: User.username.asc(),
    "name_desc": lambda: User.username.desc(),
    "email_asc": lambda: User.email.asc(),
    "email_desc": lambda: User.email.desc(),
}


class LastAdminProtectedError(InvariantViolation):
    default_message = "At least one admin must remain."


def count_admins() -> int:
    return db.session.query(User).filter(User.role == ROLE_ADMIN).count()


def query_users(query: UserQuery | None = None):
    query = query or UserQuery()
    q = db.session.query(User)

    if query.search:
        like = f"%{query.search}%"
        q = q.filter(or_(User.username.ilike(like), User.email.ilike(like)))

    if query.role:
        q = q.filter(User.role == query.role)

    order_by = USER_SORTS.get(query.sort, USER_SORTS["id_desc"])
    return q.order_by(order_by())


def list_users(query: UserQuery | None = None) -> list[User]:
    return query_users(query).all()


def get_user(user_id: int) -> User:
    user = db.session.get(User, user_id)
    if not user:
        raise NotFoundError("User not found.")
    return user


def _validate_role(role: str | None) -> str:
    if role not in ROLES:
        raise ValidationError(f"Role must be one of: {', '.join(ROLES)}")
    return role


def create(req: AdminUserRequest) -> User:
    """
    Create any kind of account.

    While no admin exists the only account that may be created is an admin.
    """
    if not all([req.username, req.email, req.password]):
        raise MissingFieldsError("All fields required.")

    role = _validate_role(req.role or "user")

    if count_admins() == 0 and role != ROLE_ADMIN:
        raise LastAdminProtectedError(
            "You must have at least one admin. Create an admin account first."
        )

    return create_user(
        username=req.username,
        email=req.email,
        password=req.password,
        role=role,
        address=req.address or "",
        contact=req.contact or "",
    )


def update(user_id: int, req: AdminUserRequest) -> User:
    """
    Edit username / email / role / address / contact.

    Raises LastAdminProtectedError when this would demote the only admin.
    """
    user = get_user(user_id)

    if not req.username or not req.email:
        raise MissingFieldsError("Username and email are required.")

    role = _validate_role(req.role or user.role)

    if user.role == ROLE_ADMIN and role != ROLE_ADMIN and count_admins() <= 1:
        raise LastAdminProtectedError(
            "At least one admin must remain. Promote another admin before changing this role."
        )

    if email_taken(req.email, exclude_user_id=user.id):
        raise EmailExistsError("Email already in use.")

    user.username = req.username
    user.email = req.email
    user.role = role
    if req.address is not None:
        user.address = req.address
    if req.contact is not None:
        user.contact = req.contact

    db.session.commit()
    return user


def delete(user_id: int) -> None:
    """
    Delete an account.

    Cart lines and sessions go with it; orders stay for bookkeeping and are
    detached from the account.
    """
    user = get_user(user_id)

    if user.role == ROLE_ADMIN and count_admins() <= 1:
        raise LastAdminProtectedError(
            "At least one admin must remain. Create another admin before deleting this account."
        )

    db.session.query(CartItem).filter(CartItem.user_id == user.id).delete(synchronize_session=False)
    db.session.query(SessionToken).filter(SessionToken.user_id == user.id).delete(synchronize_session=False)
    db.session.query(Order).filter(Order.user_id == user.id).update(
        {Order.user_id: None}, synchronize_session=False
    )
    # Bulk delete keeps the ORM from touching already-loaded child collections
    db.session.query(User).filter(User.id == user.id).delete(synchronize_session=False)
    db.session.commit()
