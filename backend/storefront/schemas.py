"""
Request schemas.

Every route builds one of these from the raw JSON body / query string with
from_payload() and hands the typed result to a service. Coercion happens
here once; services never look at request data.
"""
from __future__ import annotations

from dataclasses import dataclass, fields
from decimal import Decimal, InvalidOperation
from typing import Any

from .validation import MAX_PRICE, ValidationError


def _to_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text if text else None


def _to_quantity(value: Any) -> int:
    """Lenient cart quantity: non-numeric -> 1, floor of 1."""
    if isinstance(value, bool):
        return 1
    try:
        qty = int(str(value).strip())
    except (TypeError, ValueError):
        try:
            qty = int(float(str(value).strip()))
        except (TypeError, ValueError, OverflowError):
            return 1
    return max(qty, 1)


def _to_decimal(value: Any, field: str) -> Decimal | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    try:
        amount = Decimal(str(value).strip())
    except InvalidOperation:
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a number")
    if abs(amount) > MAX_PRICE:
        raise ValidationError(f"{field} cannot exceed {MAX_PRICE}")
    return amount


def _to_secret(value: Any, field: str) -> str | None:
    """Passwords are taken verbatim; whitespace is significant."""
    if value is None or value == "":
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    return value


def _payload(data: Any) -> dict:
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON payload")
    return data


class _Form:
    """Form-like schemas can echo themselves back for re-display."""

    SECRET_FIELDS: tuple[str, ...] = ()

    def form_data(self) -> dict:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name not in self.SECRET_FIELDS
        }


# =============================================================================
# AUTH / PROFILE
# =============================================================================

@dataclass(frozen=True)
class RegistrationRequest(_Form):
    username: str | None = None
    email: str | None = None
    password: str | None = None
    address: str | None = None
    contact: str | None = None
    role: str | None = None

    SECRET_FIELDS = ("password",)

    @classmethod
    def from_payload(cls, data: Any) -> "RegistrationRequest":
        data = _payload(data)
        return cls(
            username=_to_text(data.get("username")),
            email=_to_text(data.get("email")),
            password=_to_secret(data.get("password"), "password"),
            address=_to_text(data.get("address")),
            contact=_to_text(data.get("contact")),
            role=_to_text(data.get("role")),
        )


@dataclass(frozen=True)
class LoginRequest:
    email: str | None = None
    password: str | None = None

    @classmethod
    def from_payload(cls, data: Any) -> "LoginRequest":
        data = _payload(data)
        return cls(
            email=_to_text(data.get("email")),
            password=_to_secret(data.get("password"), "password"),
        )


@dataclass(frozen=True)
class ProfileUpdateRequest(_Form):
    username: str | None = None
    email: str | None = None
    contact: str | None = None
    address: str | None = None

    @classmethod
    def from_payload(cls, data: Any) -> "ProfileUpdateRequest":
        data = _payload(data)
        return cls(
            username=_to_text(data.get("username")),
            email=_to_text(data.get("email")),
            contact=_to_text(data.get("contact")),
            address=_to_text(data.get("address")),
        )


@dataclass(frozen=True)
class PasswordChangeRequest:
    old_password: str | None = None
    new_password: str | None = None
    confirm_password: str | None = None

    @classmethod
    def from_payload(cls, data: Any) -> "PasswordChangeRequest":
        data = _payload(data)
        return cls(
            old_password=_to_secret(data.get("old_password"), "old_password"),
            new_password=_to_secret(data.get("new_password"), "new_password"),
            confirm_password=_to_secret(data.get("confirm_password"), "confirm_password"),
        )


# =============================================================================
# ADMIN USERS
# =============================================================================

@dataclass(frozen=True)
class AdminUserRequest(_Form):
    username: str | None = None
    email: str | None = None
    password: str | None = None
    role: str | None = None
    address: str | None = None
    contact: str | None = None

    SECRET_FIELDS = ("password",)

    @classmethod
    def from_payload(cls, data: Any) -> "AdminUserRequest":
        data = _payload(data)
        return cls(
            username=_to_text(data.get("username")),
            email=_to_text(data.get("email")),
            password=_to_secret(data.get("password"), "password"),
            role=_to_text(data.get("role")),
            address=_to_text(data.get("address")),
            contact=_to_text(data.get("contact")),
        )


@dataclass(frozen=True)
class UserQuery:
    search: str | None = None
    role: str | None = None
    sort: str = "id_desc"

    @classmethod
    def from_args(cls, args) -> "UserQuery":
        return cls(
            search=_to_text(args.get("search")),
            role=_to_text(args.get("role")),
            sort=_to_text(args.get("sort")) or "id_desc",
        )


# =============================================================================
# CATALOG / CART / CHECKOUT
# =============================================================================

@dataclass(frozen=True)
class ProductQuery:
    search: str | None = None
    stock: str | None = None
    sort: str = "name_asc"

    @classmethod
    def from_args(cls, args) -> "ProductQuery":
        return cls(
            search=_to_text(args.get("search")),
            stock=_to_text(args.get("stock")),
            sort=_to_text(args.get("sort")) or "name_asc",
        )


@dataclass(frozen=True)
class CartQuantityRequest:
    quantity: int = 1

    @classmethod
    def from_payload(cls, data: Any) -> "CartQuantityRequest":
        data = _payload(data)
        return cls(quantity=_to_quantity(data.get("quantity", 1)))


@dataclass(frozen=True)
class CheckoutRequest:
    delivery_method: str = "normal"
    delivery_address: str | None = None

    @classmethod
    def from_payload(cls, data: Any) -> "CheckoutRequest":
        data = _payload(data)
        return cls(
            delivery_method=_to_text(data.get("delivery_method")) or "normal",
            delivery_address=_to_text(data.get("delivery_address")),
        )


# =============================================================================
# ORDERS
# =============================================================================

@dataclass(frozen=True)
class OrderQuery:
    search: str | None = None
    status: str | None = None
    sort: str = "id_desc"
    date_from: str | None = None
    date_to: str | None = None

    @classmethod
    def from_args(cls, args) -> "OrderQuery":
        return cls(
            search=_to_text(args.get("search")),
            status=_to_text(args.get("status")),
            sort=_to_text(args.get("sort")) or "id_desc",
            date_from=_to_text(args.get("date_from")),
            date_to=_to_text(args.get("date_to")),
        )


@dataclass(frozen=True)
class OrderUpdateRequest:
    delivery_address: str | None = None
    delivery_fee: Decimal | None = None
    status: str | None = None

    @classmethod
    def from_payload(cls, data: Any) -> "OrderUpdateRequest":
        data = _payload(data)
        return cls(
            delivery_address=_to_text(data.get("delivery_address")),
            delivery_fee=_to_decimal(data.get("delivery_fee"), "delivery_fee"),
            status=_to_text(data.get("status")),
        )
