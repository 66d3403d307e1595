from __future__ import annotations

import uuid


def new_id() -> str:
    """Opaque unique identifier assigned on insert."""
    return uuid.uuid4().hex
