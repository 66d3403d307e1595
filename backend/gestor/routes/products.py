# Overview: Flask API routes for products; parses input and returns JSON responses.

"""
Product routes.

Only name and category are writable here. quantity and
average_cost_cents are owned by purchases and sales.
"""

from flask import Blueprint, jsonify, request

from ..decorators import handle_ledger_errors, json_body
from ..models import Product
from ..services import products_service
from ..services.entity_store import get_store
from ..validation import ModelValidationPolicy, validate_payload

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "category"},
    required_on_create={"name"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
@handle_ledger_errors
def list_products_route():
    """
    Query params:
    - category: only products in this category
    """
    products = products_service.list_products(get_store(), category=request.args.get("category"))
    return jsonify({"items": [p.to_dict() for p in products], "count": len(products)})


@products_bp.post("")
@handle_ledger_errors
def create_product_route():
    patch = validate_payload(model=Product, payload=json_body(), policy=PRODUCT_POLICY, partial=False)
    product = products_service.create_product(get_store(), **patch)
    return jsonify(product.to_dict()), 201


@products_bp.put("/<product_id>")
@handle_ledger_errors
def update_product_route(product_id: str):
    patch = validate_payload(model=Product, payload=json_body(), policy=PRODUCT_POLICY, partial=True)
    product = products_service.update_product(get_store(), product_id, patch)
    return jsonify(product.to_dict())


@products_bp.delete("/<product_id>")
@handle_ledger_errors
def delete_product_route(product_id: str):
    products_service.delete_product(get_store(), product_id)
    return "", 204
