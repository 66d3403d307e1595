# Overview: Full-state export and wholesale import of the entity store.

"""
Backup Service

Export is a plain serialization of every table, in dependency order.
Import replaces the store's contents wholesale through
EntityStore.replace_all; no ledger rule runs during import, so imported
data is adopted as-is. Run reporting_service.balance_audit afterwards to
see whether it is consistent.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Numeric

from ..time_utils import parse_iso_datetime, to_utc_z, utcnow
from ..validation import ValidationError
from .entity_store import TABLE_ORDER, EntityStore

FORMAT_VERSION = 1


def _dump_value(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _load_value(column, value):
    if value is None:
        return None
    if isinstance(column.type, DateTime):
        if isinstance(value, datetime):
            return value
        if not isinstance(value, str):
            raise TypeError(f"expected an ISO timestamp, got {type(value).__name__}")
        return parse_iso_datetime(value)
    if isinstance(column.type, Numeric):
        return Decimal(str(value))
    return value


def export_state(store: EntityStore) -> dict:
    tables = {}
    for model in TABLE_ORDER:
        columns = list(model.__table__.columns)
        rows = store.session.execute(model.__table__.select().order_by(model.__table__.c.id)).all()
        tables[model.__tablename__] = [
            {col.name: _dump_value(row._mapping[col]) for col in columns}
            for row in rows
        ]
    return {
        "format_version": FORMAT_VERSION,
        "exported_at": to_utc_z(utcnow()),
        "collections": tables,
    }


def _load_rows(model, raw_rows) -> list[dict]:
    if not isinstance(raw_rows, list):
        raise ValidationError(f"collections.{model.__tablename__} must be a list")
    columns = {col.name: col for col in model.__table__.columns}
    rows = []
    for index, raw in enumerate(raw_rows):
        if not isinstance(raw, dict):
            raise ValidationError(f"collections.{model.__tablename__}[{index}] must be an object")
        unknown = sorted(set(raw) - set(columns))
        if unknown:
            raise ValidationError(
                f"Unknown fields in {model.__tablename__}: {', '.join(unknown)}",
                details={"table": model.__tablename__, "index": index},
            )
        try:
            rows.append({name: _load_value(columns[name], value) for name, value in raw.items()})
        except (ValueError, TypeError, ArithmeticError):
            raise ValidationError(
                f"Invalid value in {model.__tablename__}[{index}]",
                details={"table": model.__tablename__, "index": index},
            )
    return rows


def import_state(store: EntityStore, payload) -> dict:
    """
    Replace everything in the store with the contents of an export.

    Returns:
        {table_name: rows_imported}

    Raises:
        ValidationError: envelope or rows malformed (nothing is replaced)
    """
    if not isinstance(payload, dict):
        raise ValidationError("Backup payload must be an object")
    if payload.get("format_version") != FORMAT_VERSION:
        raise ValidationError(
            f"Unsupported backup format_version: {payload.get('format_version')!r}",
            details={"expected": FORMAT_VERSION},
        )
    collections = payload.get("collections")
    if not isinstance(collections, dict):
        raise ValidationError("Backup payload has no collections")

    known = {model.__tablename__ for model in TABLE_ORDER}
    unknown = sorted(set(collections) - known)
    if unknown:
        raise ValidationError(f"Unknown collections: {', '.join(unknown)}")

    rows_by_table = {
        model.__tablename__: _load_rows(model, collections.get(model.__tablename__, []))
        for model in TABLE_ORDER
    }
    return store.replace_all(rows_by_table)
