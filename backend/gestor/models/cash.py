from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from .base import new_id


CASH_IN = "IN"
CASH_OUT = "OUT"
CASH_WITHDRAW = "WITHDRAW"

VALID_CASH_TYPES = (CASH_IN, CASH_OUT, CASH_WITHDRAW)

EXPENSE_SOURCE_CASH = "CASH"
EXPENSE_SOURCE_CUSTOMER_PAYMENT = "CUSTOMER_PAYMENT"

VALID_EXPENSE_SOURCES = (EXPENSE_SOURCE_CASH, EXPENSE_SOURCE_CUSTOMER_PAYMENT)


class Expense(db.Model):
    __tablename__ = "expenses"

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    description = db.Column(db.String(255), nullable=False)
    amount_cents = db.Column(db.Integer, nullable=False)
    source = db.Column(db.String(24), nullable=False, default=EXPENSE_SOURCE_CASH)
    customer_payment_id = db.Column(
        db.String(32), db.ForeignKey("customer_payments.id"), nullable=True, index=True
    )

    occurred_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "description": self.description,
            "amount_cents": self.amount_cents,
            "source": self.source,
            "customer_payment_id": self.customer_payment_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "created_at": to_utc_z(self.created_at),
        }


class CashTransaction(db.Model):
    """
    One movement of the cash register.

    The register balance is never stored; it is always the fold of these
    rows (IN adds, OUT and WITHDRAW subtract).
    """
    __tablename__ = "cash_transactions"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_cash_transactions_amount_positive"),
    )

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    type = db.Column(db.String(16), nullable=False, index=True)
    amount_cents = db.Column(db.Integer, nullable=False)
    description = db.Column(db.String(255), nullable=False)

    customer_payment_id = db.Column(
        db.String(32), db.ForeignKey("customer_payments.id"), nullable=True, index=True
    )
    expense_id = db.Column(db.String(32), db.ForeignKey("expenses.id"), nullable=True, index=True)

    occurred_at = db.Column(db.DateTime, nullable=False, default=utcnow, index=True)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    @property
    def signed_amount_cents(self) -> int:
        return self.amount_cents if self.type == CASH_IN else -self.amount_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type,
            "amount_cents": self.amount_cents,
            "signed_amount_cents": self.signed_amount_cents,
            "description": self.description,
            "customer_payment_id": self.customer_payment_id,
            "expense_id": self.expense_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "created_at": to_utc_z(self.created_at),
        }
