from __future__ import annotations

from decimal import Decimal

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .base import new_id


class Product(db.Model):
    """
    Stocked product.

    quantity and average_cost_cents are maintained by the purchase and sale
    operations only. average_cost_cents keeps sub-cent precision so the
    running weighted mean does not drift with repeated purchases.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.Index("ix_products_category", "category"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    name = db.Column(db.String(255), nullable=False, index=True)
    category = db.Column(db.String(120), nullable=True)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    average_cost_cents = db.Column(db.Numeric(18, 6), nullable=False, default=Decimal("0"))

    version_id = db.Column(db.Integer, nullable=False, default=1)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Product id={self.id} name={self.name!r} quantity={self.quantity}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "quantity": self.quantity,
            "average_cost_cents": float(self.average_cost_cents or 0),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
        }


class Purchase(db.Model):
    """Stock bought from a supplier. Corrected or deleted only through the purchase service."""
    __tablename__ = "purchases"
    __table_args__ = (
        db.Index("ix_purchases_supplier_occurred", "supplier_id", "occurred_at"),
        db.Index("ix_purchases_product_occurred", "product_id", "occurred_at"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    product_id = db.Column(db.String(32), db.ForeignKey("products.id"), nullable=False)
    supplier_id = db.Column(db.String(32), db.ForeignKey("suppliers.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    total_cents = db.Column(db.Integer, nullable=False)

    occurred_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=True)

    product = db.relationship("Product", backref=db.backref("purchases", lazy=True))
    supplier = db.relationship("Supplier", backref=db.backref("purchases", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "supplier_id": self.supplier_id,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_cents": self.total_cents,
            "occurred_at": to_utc_z(self.occurred_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at) if self.updated_at else None,
        }
