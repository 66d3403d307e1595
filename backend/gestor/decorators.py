# Overview: Request decorators for API routes.

from functools import wraps

from flask import current_app, jsonify, request

from .validation import ConflictError, LedgerError, StoreUnavailableError


def handle_ledger_errors(f):
    """
    Turn ledger failures into JSON responses.

    - LedgerError subclasses: {"error", "kind", "details"} with the error's
      http_status. Conflicts and store outages are logged as warnings,
      everything else (bad input, missing ids, stock) at info.
    - Anything else: logged with traceback, generic 500 body.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            return f(*args, **kwargs)
        except LedgerError as exc:
            log = current_app.logger.warning if isinstance(
                exc, (ConflictError, StoreUnavailableError)
            ) else current_app.logger.info
            log("%s %s rejected (%s): %s", request.method, request.path, exc.kind, exc.message)
            return jsonify(exc.to_dict()), exc.http_status
        except Exception:
            current_app.logger.exception("Unhandled error in %s %s", request.method, request.path)
            return jsonify({"error": "Internal server error", "kind": "internal"}), 500

    return decorated_function


def json_body() -> dict:
    """Request JSON object or {} (never raises on bad JSON)."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}
