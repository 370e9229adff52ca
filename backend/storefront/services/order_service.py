"""
Order Service - checkout pipeline, order history and the admin order queue.

Checkout turns the caller's cart into an Order header plus OrderItem
snapshots in one transaction, then decrements stock line by line with a
conditional UPDATE and clears the cart. Stock decrement is best-effort: a
failure there is logged and reported as a warning, the order stands.

Stock race: two checkouts can both pass the cart-time stock check for the
last unit. The conditional decrement lets only one of them take the stock;
the other order is still recorded and its caller gets the stock warning.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal

from flask import current_app
from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Order, OrderItem, User, ORDER_STATUSES
from ..money import compute_subtotal, to_money
from ..schemas import CheckoutRequest, OrderQuery, OrderUpdateRequest
from ..validation import ValidationError, NotFoundError, PersistenceError
from storefront.time_utils import parse_date_bound
from . import cart_service
from .catalog_service import decrement_stock


DELIVERY_FEES = {
    "pickup": Decimal("0.00"),
    "normal": Decimal("10.00"),
    "express": Decimal("15.00"),
}
DEFAULT_DELIVERY_METHOD = "normal"
PICKUP_ADDRESS = "Pickup in store"
STOCK_WARNING = "Order placed but stock update failed. Please contact support."

ORDER_SORTS = {
    "id_desc": lambda: Order.id.desc(),
    "id_asc": lambda: Order.id.asc(),
    "total_desc": lambda: Order.total.desc(),
    "total_asc": lambda: Order.total.asc(),
    "date_desc": lambda: Order.created_at.desc(),
    "date_asc": lambda: Order.created_at.asc(),
}


class EmptyCartError(ValidationError):
    default_message = "Your cart is empty."


class OrderCreationFailed(PersistenceError):
    default_message = "Failed to place order."


@dataclass
class PlacedOrder:
    order: Order
    warnings: list[str] = field(default_factory=list)


def resolve_delivery_method(method: str | None) -> str:
    return method if method in DELIVERY_FEES else DEFAULT_DELIVERY_METHOD


def resolve_delivery_fee(method: str | None) -> Decimal:
    """Fixed fee per method; anything unknown pays the normal fee."""
    return DELIVERY_FEES[resolve_delivery_method(method)]


def compute_order_total(lines, delivery_fee) -> tuple[Decimal, Decimal]:
    """Returns (subtotal, total) for (price, quantity) pairs plus a fee."""
    subtotal = compute_subtotal(lines)
    return subtotal, to_money(subtotal + to_money(delivery_fee))


def place_order(user_id: int, req: CheckoutRequest) -> PlacedOrder:
    """
    Checkout the caller's cart.

    Raises:
        EmptyCartError: nothing in the cart (no rows are written)
        ValidationError: delivery address missing for a non-pickup method
        OrderCreationFailed: header/lines could not be stored (rolled back)
    """
    lines = cart_service.get_cart_items(user_id)
    if not lines:
        raise EmptyCartError()

    method = resolve_delivery_method(req.delivery_method)

    if method == "pickup":
        address = PICKUP_ADDRESS
    else:
        address = req.delivery_address
        if not address:
            raise ValidationError("Delivery address is required.")

    fee = resolve_delivery_fee(method)
    _, total = compute_order_total(
        ((line.product.price, line.quantity) for line in lines), fee
    )

    # Snapshot before any write; cart rows are gone after clear()
    purchased = [
        (line.product.id, line.product.name, line.quantity, to_money(line.product.price))
        for line in lines
    ]

    try:
        order = Order(
            user_id=user_id,
            delivery_method=method,
            delivery_address=address,
            delivery_fee=fee,
            total=total,
            status="pending",
        )
        for product_id, name, quantity, price in purchased:
            order.items.append(
                OrderItem(product_id=product_id, product_name=name, quantity=quantity, price=price)
            )
        db.session.add(order)
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.exception("Error creating order for user %s", user_id)
        raise OrderCreationFailed() from exc

    result = PlacedOrder(order=order)

    try:
        failed = [
            product_id
            for product_id, _name, quantity, _price in purchased
            if not decrement_stock(product_id, quantity)
        ]
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error decrementing stock for order %s", order.id)
        result.warnings.append(STOCK_WARNING)
    else:
        if failed:
            current_app.logger.warning(
                "Insufficient stock while fulfilling order %s for products %s", order.id, failed
            )
            result.warnings.append(STOCK_WARNING)

    try:
        cart_service.clear(user_id)
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("Error clearing cart after order %s", order.id)

    current_app.logger.info("Order %s placed by user %s total=%s", order.id, user_id, order.total)
    return result


# =============================================================================
# CUSTOMER VIEWS
# =============================================================================

def list_user_orders(user_id: int) -> list[Order]:
    return (
        db.session.query(Order)
        .filter(Order.user_id == user_id)
        .order_by(Order.created_at.desc(), Order.id.desc())
        .all()
    )


def get_order(order_id: int) -> Order:
    order = db.session.get(Order, order_id)
    if not order:
        raise NotFoundError("Order not found.")
    return order


def get_order_for_user(order_id: int, user_id: int) -> Order:
    """Customers can only see their own orders; others look like 404s."""
    order = get_order(order_id)
    if order.user_id != user_id:
        raise NotFoundError("Order not found.")
    return order


# =============================================================================
# ADMIN / LOGISTICS QUEUE
# =============================================================================

def query_orders(query: OrderQuery | None = None):
    query = query or OrderQuery()
    q = db.session.query(Order).outerjoin(User, User.id == Order.user_id)

    if query.search:
        like = f"%{query.search}%"
        clauses = [
            User.username.ilike(like),
            User.email.ilike(like),
            Order.delivery_address.ilike(like),
        ]
        if query.search.isdigit():
            clauses.append(Order.id == int(query.search))
        q = q.filter(or_(*clauses))

    if query.status:
        q = q.filter(Order.status == query.status)

    try:
        start = parse_date_bound(query.date_from)
        end = parse_date_bound(query.date_to, end_of_day=True)
    except ValueError:
        raise ValidationError("date_from/date_to must be ISO dates (YYYY-MM-DD)")

    if start:
        q = q.filter(Order.created_at >= start)
    if end:
        q = q.filter(Order.created_at <= end)

    order_by = ORDER_SORTS.get(query.sort, ORDER_SORTS["id_desc"])
    return q.order_by(order_by(), Order.id.desc())


def list_orders(query: OrderQuery | None = None) -> list[Order]:
    return query_orders(query).all()


def order_with_customer(order: Order, include_items: bool = True) -> dict:
    data = order.to_dict(include_items=include_items)
    data["username"] = order.user.username if order.user else None
    data["email"] = order.user.email if order.user else None
    return data


def update_order(order_id: int, req: OrderUpdateRequest) -> Order:
    """
    Admin edit of address / fee / status.

    total is recomputed from the stored lines plus the supplied fee; the fee is
    taken as given, not re-derived from the delivery method.
    """
    order = get_order(order_id)

    if not req.delivery_address:
        raise ValidationError("Delivery address is required.")
    if req.delivery_fee is None:
        raise ValidationError("Delivery fee is required.")
    if req.delivery_fee < 0:
        raise ValidationError("Delivery fee must be >= 0.")
    if req.status not in ORDER_STATUSES:
        raise ValidationError(f"Status must be one of: {', '.join(ORDER_STATUSES)}")

    fee = to_money(req.delivery_fee)
    _, total = compute_order_total(((i.price, i.quantity) for i in order.items), fee)

    order.delivery_address = req.delivery_address
    order.delivery_fee = fee
    order.status = req.status
    order.total = total
    db.session.commit()
    return order
