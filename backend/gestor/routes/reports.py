# Overview: Flask API routes for read-model projections.

from flask import Blueprint, current_app, jsonify, request

from ..decorators import handle_ledger_errors
from ..services import reporting_service
from ..services.entity_store import get_store
from ..validation import coerce_int

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/dashboard")
@handle_ledger_errors
def dashboard_report():
    threshold = request.args.get("low_stock_threshold")
    if threshold is None:
        threshold = current_app.config["LOW_STOCK_THRESHOLD"]
    else:
        threshold = coerce_int(threshold, "low_stock_threshold")
    return jsonify(reporting_service.dashboard(get_store(), low_stock_threshold=threshold))


@reports_bp.get("/daily-sales")
@handle_ledger_errors
def daily_sales_report():
    rows = reporting_service.daily_sales(
        get_store(),
        start=request.args.get("start"),
        end=request.args.get("end"),
        customer_id=request.args.get("customer_id"),
    )
    return jsonify({"rows": rows})


@reports_bp.get("/product-performance")
@handle_ledger_errors
def product_performance_report():
    rows = reporting_service.product_performance(
        get_store(),
        start=request.args.get("start"),
        end=request.args.get("end"),
        category=request.args.get("category"),
        customer_id=request.args.get("customer_id"),
    )
    return jsonify({"rows": rows})


@reports_bp.get("/customer-analysis")
@handle_ledger_errors
def customer_analysis_report():
    rows = reporting_service.customer_analysis(
        get_store(),
        start=request.args.get("start"),
        end=request.args.get("end"),
        customer_id=request.args.get("customer_id"),
    )
    return jsonify({"rows": rows})


@reports_bp.get("/balance-audit")
@handle_ledger_errors
def balance_audit_report():
    return jsonify(reporting_service.balance_audit(get_store()))
