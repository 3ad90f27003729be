from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Product(db.Model):
    """
    Stockable catalog item.

    STOCK OWNERSHIP:
    `stock` may be seeded when the product is created. After that it is
    mutated only by the ledger (transition recording and return processing),
    which always writes a StockTransition alongside the new value.

    `version_id` is an optimistic lock: two writers that both read the same
    stock cannot both commit, the second one fails with StaleDataError and is
    retried against the fresh row.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_category_name", "category", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False, index=True)
    description = db.Column(db.Text, nullable=True)
    category = db.Column(db.String(128), nullable=False)

    # Authoritative storage in cents
    cost_price_cents = db.Column(db.Integer, nullable=False, default=0)
    sell_price_cents = db.Column(db.Integer, nullable=False, default=0)

    stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=5)

    discount_percent = db.Column(db.Integer, nullable=True)
    barcode = db.Column(db.String(64), nullable=True, unique=True)
    supplier = db.Column(db.String(255), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} stock={self.stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "category": self.category,
            "cost_price_cents": self.cost_price_cents,
            "sell_price_cents": self.sell_price_cents,
            "stock": self.stock,
            "min_stock": self.min_stock,
            "discount_percent": self.discount_percent,
            "barcode": self.barcode,
            "supplier": self.supplier,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockTransition(db.Model):
    """
    Append-only ledger entry. Rows are never updated or deleted.

    quantity is always a non-negative magnitude; direction comes from
    transaction_type. new_stock - previous_stock is the signed delta.
    """
    __tablename__ = "stock_transitions"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="ck_stock_transitions_quantity"),
        db.Index("ix_stock_transitions_product_created", "product_id", "created_at"),
        db.Index("ix_stock_transitions_type_created", "transaction_type", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    # Snapshot at write time; survives later renames
    product_name = db.Column(db.String(255), nullable=False)

    transaction_type = db.Column(db.String(32), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    previous_stock = db.Column(db.Integer, nullable=False)
    new_stock = db.Column(db.Integer, nullable=False)

    unit_price_cents = db.Column(db.Integer, nullable=False, default=0)
    total_value_cents = db.Column(db.Integer, nullable=False, default=0)

    # Order id, return id, ...
    reference = db.Column(db.String(64), nullable=True, index=True)

    party_name = db.Column(db.String(255), nullable=True)
    party_type = db.Column(db.String(16), nullable=True)  # customer, supplier, system
    party_id = db.Column(db.String(64), nullable=True)

    user_id = db.Column(db.String(64), nullable=False)
    user_name = db.Column(db.String(128), nullable=False)

    notes = db.Column(db.Text, nullable=False, default="")

    created_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)

    product = db.relationship("Product", lazy="joined")

    def __repr__(self) -> str:
        return (
            f"<StockTransition id={self.id} product_id={self.product_id} "
            f"type={self.transaction_type} {self.previous_stock}->{self.new_stock}>"
        )

    def party_dict(self) -> dict | None:
        if not (self.party_name or self.party_type or self.party_id):
            return None
        return {"name": self.party_name, "type": self.party_type, "id": self.party_id}

    def to_dict(self) -> dict:
        product = None
        if self.product is not None:
            product = {
                "id": self.product.id,
                "name": self.product.name,
                "barcode": self.product.barcode,
                "category": self.product.category,
            }
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "product": product,
            "transaction_type": self.transaction_type,
            "quantity": self.quantity,
            "previous_stock": self.previous_stock,
            "new_stock": self.new_stock,
            "unit_price_cents": self.unit_price_cents,
            "total_value_cents": self.total_value_cents,
            "reference": self.reference,
            "party": self.party_dict(),
            "user_id": self.user_id,
            "user_name": self.user_name,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
        }
