# Overview: Flask API routes for customers and their payments.

from flask import Blueprint, jsonify

from ..decorators import handle_ledger_errors, json_body
from ..models import Customer
from ..services import party_service, payment_service, reporting_service
from ..services.entity_store import get_store
from ..validation import ModelValidationPolicy, validate_payload

CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={"name"},
    required_on_create={"name"},
)

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@handle_ledger_errors
def list_customers_route():
    customers = party_service.list_customers(get_store())
    return jsonify({"items": [c.to_dict() for c in customers], "count": len(customers)})


@customers_bp.post("")
@handle_ledger_errors
def create_customer_route():
    patch = validate_payload(model=Customer, payload=json_body(), policy=CUSTOMER_POLICY, partial=False)
    customer = party_service.create_customer(get_store(), **patch)
    return jsonify(customer.to_dict()), 201


@customers_bp.put("/<customer_id>")
@handle_ledger_errors
def update_customer_route(customer_id: str):
    patch = validate_payload(model=Customer, payload=json_body(), policy=CUSTOMER_POLICY, partial=False)
    customer = party_service.rename_customer(get_store(), customer_id, **patch)
    return jsonify(customer.to_dict())


@customers_bp.delete("/<customer_id>")
@handle_ledger_errors
def delete_customer_route(customer_id: str):
    party_service.delete_customer(get_store(), customer_id)
    return "", 204


@customers_bp.get("/<customer_id>/statement")
@handle_ledger_errors
def customer_statement_route(customer_id: str):
    return jsonify(reporting_service.customer_statement(get_store(), customer_id))


@customers_bp.get("/<customer_id>/payments")
@handle_ledger_errors
def list_customer_payments_route(customer_id: str):
    payments = payment_service.list_customer_payments(get_store(), customer_id=customer_id)
    return jsonify({"items": [p.to_dict() for p in payments], "count": len(payments)})


@customers_bp.post("/<customer_id>/payments")
@handle_ledger_errors
def add_customer_payment_route(customer_id: str):
    """
    Record a payment from a customer.

    Request body:
    {
        "amount_cents": 5000,                 // required, > 0
        "method": "PIX",                      // CASH | CHECK | PIX | CARD | TRANSFER
        "allocations": [                      // optional; sum <= amount_cents
            {"supplier_id": "...", "amount_cents": 3000}
        ],
        "occurred_at": "2024-05-01T10:00:00Z" // optional
    }

    The unallocated remainder goes into the cash register.
    """
    data = json_body()
    payment = payment_service.add_customer_payment(
        get_store(),
        customer_id=customer_id,
        amount_cents=data.get("amount_cents"),
        method=data.get("method") or payment_service.METHOD_CASH,
        allocations=payment_service.allocations_from_payload(data.get("allocations")),
        occurred_at=data.get("occurred_at"),
    )
    return jsonify(payment.to_dict()), 201
