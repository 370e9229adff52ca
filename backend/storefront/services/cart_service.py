"""
Cart Service

Per-user cart lines backed by cart_items. Every operation takes the caller's
user_id explicitly; an anonymous caller (user_id=None) always sees an empty
cart. Quantities are checked against catalog stock at the moment of the
change only.
"""

from ..extensions import db
from ..models import CartItem, Product
from ..money import compute_subtotal, format_money, line_subtotal
from ..validation import StockError
from .catalog_service import get_product


class OutOfStockError(StockError):
    """Requested cart quantity is above current catalog stock."""
    def __init__(self, message: str, available: int):
        super().__init__(message, details={"available": available})
        self.available = available


def get_cart_items(user_id: int | None) -> list[CartItem]:
    if user_id is None:
        return []
    return (
        db.session.query(CartItem)
        .join(Product, Product.id == CartItem.product_id)
        .filter(CartItem.user_id == user_id)
        .order_by(CartItem.id.asc())
        .all()
    )


def _get_line(user_id: int, product_id: int) -> CartItem | None:
    return db.session.query(CartItem).filter_by(user_id=user_id, product_id=product_id).first()


def _store_quantity(user_id: int, product_id: int, quantity: int) -> CartItem:
    line = _get_line(user_id, product_id)
    if line is None:
        line = CartItem(user_id=user_id, product_id=product_id, quantity=quantity)
        db.session.add(line)
    else:
        line.quantity = quantity
    db.session.commit()
    return line


def line_to_dict(line: CartItem) -> dict:
    p = line.product
    return {
        "product_id": p.id,
        "name": p.name,
        "price": format_money(p.price),
        "image": p.image,
        "stock": p.stock,
        "quantity": line.quantity,
        "subtotal": format_money(line_subtotal(p.price, line.quantity)),
    }


def list_cart(user_id: int | None) -> dict:
    lines = get_cart_items(user_id)
    return {
        "items": [line_to_dict(line) for line in lines],
        "count": sum(line.quantity for line in lines),
        "subtotal": format_money(compute_subtotal((line.product.price, line.quantity) for line in lines)),
    }


def cart_count(user_id: int | None) -> int:
    if user_id is None:
        return 0
    total = (
        db.session.query(db.func.coalesce(db.func.sum(CartItem.quantity), 0))
        .filter(CartItem.user_id == user_id)
        .scalar()
    )
    return int(total or 0)


def add(user_id: int, product_id: int, quantity: int) -> tuple[CartItem, Product]:
    """
    Add quantity on top of whatever is already in the cart.

    Raises:
        NotFoundError: unknown product
        OutOfStockError: quantity, or existing + quantity, exceeds stock
    """
    product = get_product(product_id)

    if quantity > product.stock:
        raise OutOfStockError(f"Only {product.stock} left in stock.", product.stock)

    existing = _get_line(user_id, product.id)
    new_qty = (existing.quantity if existing else 0) + quantity

    if new_qty > product.stock:
        raise OutOfStockError(f"Cannot exceed stock quantity ({product.stock}).", product.stock)

    return _store_quantity(user_id, product.id, new_qty), product


def set_quantity(user_id: int, product_id: int, quantity: int) -> CartItem:
    """Replace the line quantity (creating the line if needed)."""
    product = get_product(product_id)

    if quantity > product.stock:
        raise OutOfStockError(f"Only {product.stock} left in stock.", product.stock)

    return _store_quantity(user_id, product.id, quantity)


def remove(user_id: int, product_id: int) -> bool:
    deleted = (
        db.session.query(CartItem)
        .filter_by(user_id=user_id, product_id=product_id)
        .delete(synchronize_session=False)
    )
    db.session.commit()
    return deleted > 0


def clear(user_id: int, *, commit: bool = True) -> int:
    deleted = (
        db.session.query(CartItem)
        .filter_by(user_id=user_id)
        .delete(synchronize_session=False)
    )
    if commit:
        db.session.commit()
    return deleted
