# Overview: Service-layer operations for CSV export; encapsulates business logic and database work.

"""
CSV exports for the admin screens.

Each export reuses the listing query of its screen, so the file contains
exactly what the filtered listing shows.
"""
from __future__ import annotations

import csv
import io
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from ..money import format_money
from ..schemas import ProductQuery, OrderQuery, UserQuery
from ..time_utils import to_utc_z
from .catalog_service import query_products
from .order_service import query_orders
from .user_admin_service import query_users


@dataclass(frozen=True)
class Column:
    key: str
    label: str


PRODUCT_COLUMNS = (
    Column("id", "ID"),
    Column("name", "Name"),
    Column("stock", "Stock"),
    Column("price", "Price"),
    Column("image", "Image"),
)

ORDER_COLUMNS = (
    Column("id", "Order ID"),
    Column("username", "User"),
    Column("status", "Status"),
    Column("total", "Total"),
    Column("delivery_fee", "Delivery Fee"),
    Column("delivery_address", "Delivery Address"),
    Column("created_at", "Created At"),
)

USER_COLUMNS = (
    Column("id", "User ID"),
    Column("username", "Username"),
    Column("email", "Email"),
    Column("role", "Role"),
    Column("contact", "Contact"),
    Column("address", "Address"),
)


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


def to_csv(rows: Iterable[dict], columns: Sequence[Column]) -> str:
    """
    Header line plus one line per row, '\\n' separated.

    Values with a comma, quote or newline are quoted and inner quotes doubled
    (csv.QUOTE_MINIMAL); None becomes an empty field.
    """
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow([c.label for c in columns])
    for row in rows:
        writer.writerow([_cell(row.get(c.key)) for c in columns])
    return buf.getvalue()


def export_products(query: ProductQuery | None = None) -> str:
    rows = (
        {
            "id": p.id,
            "name": p.name,
            "stock": p.stock,
            "price": format_money(p.price),
            "image": p.image,
        }
        for p in query_products(query)
    )
    return to_csv(rows, PRODUCT_COLUMNS)


def export_orders(query: OrderQuery | None = None) -> str:
    rows = (
        {
            "id": o.id,
            "username": o.user.username if o.user else None,
            "status": o.status,
            "total": format_money(o.total),
            "delivery_fee": format_money(o.delivery_fee),
            "delivery_address": o.delivery_address,
            "created_at": to_utc_z(o.created_at),
        }
        for o in query_orders(query)
    )
    return to_csv(rows, ORDER_COLUMNS)


def export_users(query: UserQuery | None = None) -> str:
    rows = (
        {
            "id": u.id,
            "username": u.username,
            "email": u.email,
            "role": u.role,
            "contact": u.contact,
            "address": u.address,
        }
        for u in query_users(query)
    )
    return to_csv(rows, USER_COLUMNS)
