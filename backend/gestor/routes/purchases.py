# Overview: Flask API routes for purchases (stock-in from suppliers).

from flask import Blueprint, jsonify, request

from ..decorators import handle_ledger_errors, json_body
from ..services import purchase_service
from ..services.entity_store import get_store

purchases_bp = Blueprint("purchases", __name__, url_prefix="/api/purchases")


@purchases_bp.get("")
@handle_ledger_errors
def list_purchases_route():
    purchases = purchase_service.list_purchases(
        get_store(),
        supplier_id=request.args.get("supplier_id"),
        product_id=request.args.get("product_id"),
    )
    return jsonify({"items": [p.to_dict() for p in purchases], "count": len(purchases)})


@purchases_bp.post("")
@handle_ledger_errors
def add_purchase_route():
    """
    Register a purchase.

    Request body:
    {
        "supplier_id": "...",                                   // required
        "product_id": "..."                                     // existing product
          OR "new_product": {"name": "Widget", "category": "X"},  // created by this purchase
        "quantity": 10,                                         // > 0
        "unit_price_cents": 200,                                // >= 0
        "occurred_at": "2024-05-01"                             // optional
    }

    Returns:
        {"purchase": {...}, "product": {...}, "supplier": {...}}
    """
    data = json_body()
    purchase = purchase_service.add_purchase(
        get_store(),
        product=purchase_service.product_ref_from_payload(data),
        supplier_id=data.get("supplier_id"),
        quantity=data.get("quantity"),
        unit_price_cents=data.get("unit_price_cents"),
        occurred_at=data.get("occurred_at"),
    )
    return jsonify({
        "purchase": purchase.to_dict(),
        "product": purchase.product.to_dict(),
        "supplier": purchase.supplier.to_dict(),
    }), 201


@purchases_bp.put("/<purchase_id>")
@handle_ledger_errors
def update_purchase_route(purchase_id: str):
    data = json_body()
    purchase = purchase_service.update_purchase(
        get_store(),
        purchase_id,
        product_id=data.get("product_id"),
        supplier_id=data.get("supplier_id"),
        quantity=data.get("quantity"),
        unit_price_cents=data.get("unit_price_cents"),
    )
    return jsonify(purchase.to_dict())


@purchases_bp.delete("/<purchase_id>")
@handle_ledger_errors
def delete_purchase_route(purchase_id: str):
    purchase_service.delete_purchase(get_store(), purchase_id)
    return "", 204
