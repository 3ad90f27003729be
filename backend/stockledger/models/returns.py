from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Return(db.Model):
    """
    Customer or supplier return of a single product.

    Captures the stock before and after the return at processing time.
    The matching StockTransition stores this row's id in its `reference`
    column; that link is written after the return commits and may be
    missing until the reconciliation job repairs it.
    """
    __tablename__ = "returns"
    __table_args__ = (
        db.CheckConstraint("quantity >= 1", name="ck_returns_quantity_positive"),
        db.Index("ix_returns_product_created", "product_id", "created_at"),
        db.Index("ix_returns_type_created", "return_type", "created_at"),
        db.Index("ix_returns_user_created", "user_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    product_name = db.Column(db.String(255), nullable=False)

    return_type = db.Column(db.String(16), nullable=False)  # customer, supplier
    quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.Text, nullable=False)
    notes = db.Column(db.Text, nullable=False, default="")

    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_value_cents = db.Column(db.Integer, nullable=False)

    previous_stock = db.Column(db.Integer, nullable=False)
    new_stock = db.Column(db.Integer, nullable=False)

    user_id = db.Column(db.String(64), nullable=False)
    user_name = db.Column(db.String(128), nullable=False)

    status = db.Column(db.String(16), nullable=False, default="completed")  # pending, completed, cancelled

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    product = db.relationship("Product", lazy="joined")

    def __repr__(self) -> str:
        return f"<Return id={self.id} type={self.return_type} product_id={self.product_id} qty={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product": {
                "id": self.product_id,
                "name": self.product_name,
                "sell_price_cents": self.unit_price_cents,
            },
            "return_type": self.return_type,
            "quantity": self.quantity,
            "reason": self.reason,
            "notes": self.notes,
            "unit_price_cents": self.unit_price_cents,
            "total_value_cents": self.total_value_cents,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "user": {"id": self.user_id, "username": self.user_name},
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
