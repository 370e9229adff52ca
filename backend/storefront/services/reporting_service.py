# Overview: Service-layer operations for reporting; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy import func

from storefront.extensions import db
from storefront.models import Order, OrderItem, Product, User
from storefront.money import format_money, to_money
from storefront.services.catalog_service import low_stock_products
from storefront.services.order_service import order_with_customer
from storefront.time_utils import to_utc_z


RECENT_ITEMS_LIMIT = 15
RECENT_ORDERS_LIMIT = 5


def user_dashboard(user_id: int) -> dict:
    total_orders, total_spent = (
        db.session.query(
            func.count(Order.id),
            func.coalesce(func.sum(Order.total), 0),
        )
        .filter(Order.user_id == user_id)
        .one()
    )

    rows = (
        db.session.query(OrderItem, Order.created_at)
        .join(Order, Order.id == OrderItem.order_id)
        .filter(Order.user_id == user_id)
        .order_by(Order.created_at.desc(), OrderItem.id.desc())
        .limit(RECENT_ITEMS_LIMIT)
        .all()
    )

    recent_items = [
        {
            "order_id": item.order_id,
            "product_id": item.product_id,
            "name": item.product_name,
            "quantity": item.quantity,
            "price": format_money(item.price),
            "created_at": to_utc_z(created_at),
        }
        for item, created_at in rows
    ]

    return {
        "total_orders": int(total_orders or 0),
        "total_spent": format_money(to_money(total_spent)),
        "recent_items": recent_items,
        "recent_items_quantity": sum(i["quantity"] for i in recent_items),
    }


def monthly_sales() -> list[dict]:
    period_expr = func.strftime("%Y-%m", Order.created_at)

    rows = (
        db.session.query(
            period_expr.label("period"),
            func.count(Order.id).label("order_count"),
            func.coalesce(func.sum(Order.total), 0).label("revenue"),
        )
        .group_by("period")
        .order_by("period")
        .all()
    )
    return [
        {
            "period": row.period,
            "order_count": int(row.order_count or 0),
            "revenue": format_money(to_money(row.revenue)),
        }
        for row in rows
    ]


def role_breakdown() -> dict[str, int]:
    rows = (
        db.session.query(User.role, func.count(User.id))
        .group_by(User.role)
        .order_by(User.role)
        .all()
    )
    return {role: int(count) for role, count in rows}


def admin_dashboard(low_stock_threshold: int = 10) -> dict:
    """Store-wide aggregates for admin and logistics staff."""
    revenue = db.session.query(func.coalesce(func.sum(Order.total), 0)).scalar()

    recent = (
        db.session.query(Order)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .limit(RECENT_ORDERS_LIMIT)
        .all()
    )

    return {
        "total_products": db.session.query(Product).count(),
        "total_orders": db.session.query(Order).count(),
        "total_revenue": format_money(to_money(revenue)),
        "total_users": db.session.query(User).count(),
        "monthly_sales": monthly_sales(),
        "roles": role_breakdown(),
        "recent_orders": [order_with_customer(o, include_items=False) for o in recent],
        "low_stock_threshold": low_stock_threshold,
        "low_stock": [p.to_dict() for p in low_stock_products(low_stock_threshold)],
    }
