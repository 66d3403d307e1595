# Overview: Flask API routes for the cash register and expenses.

from flask import Blueprint, jsonify, request

from ..decorators import handle_ledger_errors, json_body
from ..models.cash import EXPENSE_SOURCE_CASH
from ..services import cash_service, reporting_service
from ..services.entity_store import get_store
from ..validation import coerce_int

cash_bp = Blueprint("cash", __name__, url_prefix="/api/cash")
expenses_bp = Blueprint("expenses", __name__, url_prefix="/api/expenses")


@cash_bp.get("")
@handle_ledger_errors
def cash_summary_route():
    """
    Current register balance and the latest movements.

    Query params:
    - limit: number of movements (default 100, max 1000)
    """
    limit = request.args.get("limit")
    limit = 100 if limit is None else max(1, min(coerce_int(limit, "limit"), 1000))

    store = get_store()
    movements = reporting_service.cash_movements(store, limit=limit)
    return jsonify({
        "balance_cents": reporting_service.cash_balance(store),
        "items": [m.to_dict() for m in movements],
        "count": len(movements),
    })


@cash_bp.post("/withdrawals")
@handle_ledger_errors
def cash_withdrawal_route():
    data = json_body()
    movement = cash_service.add_cash_withdrawal(
        get_store(),
        amount_cents=data.get("amount_cents"),
        description=data.get("description"),
        occurred_at=data.get("occurred_at"),
    )
    return jsonify(movement.to_dict()), 201


@cash_bp.post("/deposits")
@handle_ledger_errors
def cash_deposit_route():
    data = json_body()
    movement = cash_service.add_cash_deposit(
        get_store(),
        amount_cents=data.get("amount_cents"),
        description=data.get("description"),
        occurred_at=data.get("occurred_at"),
    )
    return jsonify(movement.to_dict()), 201


@expenses_bp.get("")
@handle_ledger_errors
def list_expenses_route():
    expenses = cash_service.list_expenses(get_store())
    return jsonify({"items": [e.to_dict() for e in expenses], "count": len(expenses)})


@expenses_bp.post("")
@handle_ledger_errors
def add_expense_route():
    """
    Request body:
    {
        "description": "Electricity",       // required
        "amount_cents": 12000,              // > 0
        "source": "CASH",                   // CASH | CUSTOMER_PAYMENT
        "customer_payment_id": "...",       // optional
        "from_cash": true,                  // optional, defaults to source == CASH
        "occurred_at": "2024-05-01"         // optional
    }
    """
    data = json_body()
    from_cash = data.get("from_cash")
    expense = cash_service.add_expense(
        get_store(),
        description=data.get("description"),
        amount_cents=data.get("amount_cents"),
        source=data.get("source") or EXPENSE_SOURCE_CASH,
        customer_payment_id=data.get("customer_payment_id"),
        from_cash=None if from_cash is None else bool(from_cash),
        occurred_at=data.get("occurred_at"),
    )
    return jsonify(expense.to_dict()), 201
