from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .base import new_id


class CustomerPayment(db.Model):
    """
    Money received from a customer.

    Part of it may be redirected straight to suppliers (allocations); the
    unallocated remainder is credited to the cash register.
    """
    __tablename__ = "customer_payments"
    __table_args__ = (
        db.Index("ix_customer_payments_customer_occurred", "customer_id", "occurred_at"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    customer_id = db.Column(db.String(32), db.ForeignKey("customers.id"), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    method = db.Column(db.String(16), nullable=False)

    occurred_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    customer = db.relationship("Customer", backref=db.backref("payments", lazy=True))
    allocations = db.relationship(
        "PaymentAllocation",
        order_by="PaymentAllocation.position",
        cascade="all, delete-orphan",
        backref="payment",
        lazy="selectin",
    )

    @property
    def allocated_cents(self) -> int:
        return sum(a.amount_cents for a in self.allocations)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "customer_id": self.customer_id,
            "amount_cents": self.amount_cents,
            "method": self.method,
            "allocated_to": [a.to_dict() for a in self.allocations],
            "cash_cents": self.amount_cents - self.allocated_cents,
            "occurred_at": to_utc_z(self.occurred_at),
            "created_at": to_utc_z(self.created_at),
        }


class PaymentAllocation(db.Model):
    __tablename__ = "payment_allocations"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    payment_id = db.Column(db.String(32), db.ForeignKey("customer_payments.id"), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False)
    supplier_id = db.Column(db.String(32), db.ForeignKey("suppliers.id"), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)

    supplier = db.relationship("Supplier")

    def to_dict(self) -> dict:
        return {
            "supplier_id": self.supplier_id,
            "amount_cents": self.amount_cents,
        }


class SupplierPayment(db.Model):
    """Direct payment to a supplier out of the cash register."""
    __tablename__ = "supplier_payments"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    supplier_id = db.Column(db.String(32), db.ForeignKey("suppliers.id"), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    method = db.Column(db.String(16), nullable=False, default="CASH")
    origin = db.Column(db.String(16), nullable=False, default="DIRECT")
    cash_transaction_id = db.Column(db.String(32), db.ForeignKey("cash_transactions.id"), nullable=True)

    occurred_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    supplier = db.relationship("Supplier", backref=db.backref("direct_payments", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "amount_cents": self.amount_cents,
            "method": self.method,
            "origin": self.origin,
            "cash_transaction_id": self.cash_transaction_id,
            "occurred_at": to_utc_z(self.occurred_at),
        }
