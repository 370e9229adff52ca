# backend/storefront/services/catalog_service.py
"""
Catalog Service

Listing with search / stock bucket / sort, admin CRUD and the conditional
stock decrement used by checkout.
"""
from __future__ import annotations

from ..extensions import db
from ..models import Product, CartItem, OrderItem
from ..schemas import ProductQuery
from ..validation import NotFoundError

PRODUCT_MUTABLE_FIELDS = {"name", "price", "stock", "image"}

# Stock buckets used by the catalog filter
LOW_STOCK_LIMIT = 5
HIGH_STOCK_FLOOR = 20

STOCK_BUCKETS = {
    "low": lambda: Product.stock < LOW_STOCK_LIMIT,
    "medium": lambda: Product.stock.between(LOW_STOCK_LIMIT, HIGH_STOCK_FLOOR - 1),
    "high": lambda: Product.stock >= HIGH_STOCK_FLOOR,
}

SORT_ORDERS = {
    "name_asc": lambda: Product.name.asc(),
    "name_desc": lambda: Product.name.desc(),
    "stock_asc": lambda: Product.stock.asc(),
    "stock_desc": lambda: Product.stock.desc(),
    "price_asc": lambda: Product.price.asc(),
    "price_desc": lambda: Product.price.desc(),
}
DEFAULT_SORT = "name_asc"


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def query_products(query: ProductQuery | None = None):
    """
    Build the filtered/sorted product query.

    All filters are optional and combined with AND. An unknown stock bucket is
    ignored; an unknown sort falls back to name ascending.
    """
    query = query or ProductQuery()
    q = db.session.query(Product)

    if query.search:
        q = q.filter(Product.name.ilike(f"%{query.search}%"))

    bucket = STOCK_BUCKETS.get(query.stock or "")
    if bucket is not None:
        q = q.filter(bucket())

    order = SORT_ORDERS.get(query.sort, SORT_ORDERS[DEFAULT_SORT])
    return q.order_by(order(), Product.id.asc())


def list_products(query: ProductQuery | None = None) -> dict:
    products = query_products(query).all()
    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
    }


def get_product(product_id: int) -> Product:
    p = db.session.get(Product, product_id)
    if not p:
        raise NotFoundError("Product not found")
    return p


def create_product(*, patch: dict) -> dict:
    """Create product from a validated patch dict (see PRODUCT_POLICY in routes)."""
    p = Product(stock=0, price=0)
    apply_product_patch(p, patch)

    db.session.add(p)
    db.session.commit()
    return p.to_dict()


def update_product(*, product_id: int, patch: dict) -> dict:
    p = get_product(product_id)
    apply_product_patch(p, patch)
    db.session.commit()
    return p.to_dict()


def delete_product(*, product_id: int) -> None:
    """
    Hard-delete a product.

    Cart lines for it are removed. Order lines keep their name/price snapshot
    and lose the product link.
    """
    p = get_product(product_id)

    db.session.query(CartItem).filter(CartItem.product_id == p.id).delete(synchronize_session=False)
    db.session.query(OrderItem).filter(OrderItem.product_id == p.id).update(
        {OrderItem.product_id: None}, synchronize_session=False
    )
    db.session.delete(p)
    db.session.commit()


def decrement_stock(product_id: int, quantity: int) -> bool:
    """
    stock = stock - quantity, only while stock >= quantity.

    Returns True if the row was updated. Does not commit; the caller owns the
    transaction.
    """
    updated = (
        db.session.query(Product)
        .filter(Product.id == product_id, Product.stock >= quantity)
        .update({Product.stock: Product.stock - quantity}, synchronize_session=False)
    )
    return updated == 1


def count_products() -> int:
    return db.session.query(Product).count()


def low_stock_products(threshold: int) -> list[Product]:
    return (
        db.session.query(Product)
        .filter(Product.stock < threshold)
        .order_by(Product.stock.asc(), Product.id.asc())
        .all()
    )
