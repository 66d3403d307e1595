# Overview: Flask API routes for sales; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..decorators import handle_ledger_errors, json_body
from ..services import sales_service
from ..services.entity_store import get_store

sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("")
@handle_ledger_errors
def list_sales_route():
    sales = sales_service.list_sales(get_store(), customer_id=request.args.get("customer_id"))
    return jsonify({"items": [s.to_dict() for s in sales], "count": len(sales)})


@sales_bp.post("")
@handle_ledger_errors
def add_sale_route():
    """
    Request body:
    {
        "customer_id": "...",
        "items": [{"product_id": "...", "quantity": 4, "unit_price_cents": 500}],
        "occurred_at": "2024-05-01T14:30:00Z"   // optional
    }

    409 with kind "insufficient_stock" when any item exceeds stock; nothing
    is recorded in that case.
    """
    data = json_body()
    sale = sales_service.add_sale(
        get_store(),
        customer_id=data.get("customer_id"),
        items=sales_service.items_from_payload(data.get("items")),
        occurred_at=data.get("occurred_at"),
    )
    return jsonify(sale.to_dict()), 201


@sales_bp.get("/<sale_id>")
@handle_ledger_errors
def get_sale_route(sale_id: str):
    return jsonify(sales_service.get_sale(get_store(), sale_id).to_dict())


@sales_bp.put("/<sale_id>")
@handle_ledger_errors
def update_sale_route(sale_id: str):
    """
    Request body (both optional):
    {
        "customer_id": "...",
        "items": [{"product_id": "...", "quantity": 2, "unit_price_cents": 500}]
    }

    Items, when given, replace the sale's items entirely.
    """
    data = json_body()
    items = data.get("items")
    sale = sales_service.update_sale(
        get_store(),
        sale_id,
        customer_id=data.get("customer_id"),
        items=sales_service.items_from_payload(items) if items is not None else None,
    )
    return jsonify(sale.to_dict())


@sales_bp.delete("/<sale_id>")
@handle_ledger_errors
def delete_sale_route(sale_id: str):
    sales_service.delete_sale(get_store(), sale_id)
    return "", 204
