from __future__ import annotations

import uuid
from decimal import Decimal

from ..extensions import db


def new_id() -> str:
    """Record identity: random UUID4 string, safe to mint offline."""
    return str(uuid.uuid4())


def Money(**kwargs):
    """Two-decimal money column handled as Decimal."""
    return db.Column(db.Numeric(12, 2, asdecimal=True), **kwargs)


def money_out(value) -> float | None:
    # JSON has no decimal type; the wire carries plain numbers like the POS UI
    if value is None:
        return None
    return float(Decimal(value))
