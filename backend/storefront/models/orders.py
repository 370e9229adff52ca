from __future__ import annotations

from ..extensions import db
from storefront.money import compute_subtotal, format_money, line_subtotal
from storefront.time_utils import to_utc_z


ORDER_STATUSES = ("pending", "processing", "shipped", "delivered", "cancelled")


class Order(db.Model):
    """
    Order header written once by checkout.

    total = sum(line price x quantity) + delivery_fee. Only the admin edit flow
    changes address/fee/status afterwards, and it recomputes total from the
    stored lines.
    """
    __tablename__ = "orders"
    __table_args__ = (
        db.Index("ix_orders_user_created", "user_id", "created_at"),
        db.Index("ix_orders_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    # Detached (NULL) when the customer account is deleted
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)

    delivery_method = db.Column(db.String(16), nullable=False, default="normal")
    delivery_address = db.Column(db.String(255), nullable=False)
    delivery_fee = db.Column(db.Numeric(10, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(10, 2), nullable=False)
    status = db.Column(db.String(16), nullable=False, default="pending")

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    user = db.relationship("User", backref=db.backref("orders", lazy=True, passive_deletes=True))
    items = db.relationship(
        "OrderItem",
        backref="order",
        lazy=True,
        cascade="all, delete-orphan",
        order_by="OrderItem.id",
    )

    def items_total(self):
        return compute_subtotal((i.price, i.quantity) for i in self.items)

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "user_id": self.user_id,
            "delivery_method": self.delivery_method,
            "delivery_address": self.delivery_address,
            "delivery_fee": format_money(self.delivery_fee),
            "total": format_money(self.total),
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
        if include_items:
            data["items"] = [i.to_dict() for i in self.items]
            data["items_total"] = format_money(self.items_total())
        return data


class OrderItem(db.Model):
    """Immutable purchase snapshot: name and unit price as they were at checkout."""
    __tablename__ = "order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    order_id = db.Column(db.Integer, db.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id", ondelete="SET NULL"), nullable=True, index=True)

    product_name = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_id": self.order_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "price": format_money(self.price),
            "subtotal": format_money(line_subtotal(self.price, self.quantity)),
        }
