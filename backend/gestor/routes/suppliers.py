# Overview: Flask API routes for suppliers; parses input and returns JSON responses.

"""
Supplier Routes

Master data (name) is managed here; balances are read-only and move only
through purchases, customer-payment allocations and direct cash payments.
"""

from flask import Blueprint, jsonify

from ..decorators import handle_ledger_errors, json_body
from ..models import Supplier
from ..services import cash_service, party_service, payment_service, reporting_service
from ..services.entity_store import get_store
from ..validation import ModelValidationPolicy, validate_payload

SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name"},
    required_on_create={"name"},
)

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@handle_ledger_errors
def list_suppliers_route():
    suppliers = party_service.list_suppliers(get_store())
    return jsonify({"items": [s.to_dict() for s in suppliers], "count": len(suppliers)})


@suppliers_bp.post("")
@handle_ledger_errors
def create_supplier_route():
    """
    Request body: {"name": "Supplier name"}

    Returns:
        Created supplier (balance_cents 0)
    """
    patch = validate_payload(model=Supplier, payload=json_body(), policy=SUPPLIER_POLICY, partial=False)
    supplier = party_service.create_supplier(get_store(), **patch)
    return jsonify(supplier.to_dict()), 201


@suppliers_bp.put("/<supplier_id>")
@handle_ledger_errors
def update_supplier_route(supplier_id: str):
    patch = validate_payload(model=Supplier, payload=json_body(), policy=SUPPLIER_POLICY, partial=False)
    supplier = party_service.rename_supplier(get_store(), supplier_id, **patch)
    return jsonify(supplier.to_dict())


@suppliers_bp.delete("/<supplier_id>")
@handle_ledger_errors
def delete_supplier_route(supplier_id: str):
    party_service.delete_supplier(get_store(), supplier_id)
    return "", 204


@suppliers_bp.get("/<supplier_id>/statement")
@handle_ledger_errors
def supplier_statement_route(supplier_id: str):
    return jsonify(reporting_service.supplier_statement(get_store(), supplier_id))


@suppliers_bp.post("/<supplier_id>/payments")
@handle_ledger_errors
def pay_supplier_route(supplier_id: str):
    """
    Pay a supplier out of the cash register.

    Request body:
    {
        "amount_cents": 1500,        // required, > 0
        "method": "PIX",             // optional, CASH | CHECK | PIX | CARD | TRANSFER
        "description": "...",        // optional
        "occurred_at": "2024-05-01"  // optional, defaults to now
    }
    """
    data = json_body()
    payment = cash_service.pay_supplier_from_cash(
        get_store(),
        supplier_id=supplier_id,
        amount_cents=data.get("amount_cents"),
        method=data.get("method") or payment_service.METHOD_CASH,
        description=data.get("description"),
        occurred_at=data.get("occurred_at"),
    )
    return jsonify(payment.to_dict()), 201
