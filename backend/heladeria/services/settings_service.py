"""
Local settings store and company configuration.

The settings table is the key-value collaborator of the POS: get/set/delete
on JSON-encoded values. Company configuration (fiscal data, delivery cost,
sync server, last sync date) lives in it under one key per field.
"""

from __future__ import annotations

import json
from decimal import Decimal
from typing import Any

from ..extensions import db
from ..models import Setting
from ..validation import ValidationError, parse_amount


COMPANY_PREFIX = "company."

COMPANY_DEFAULTS: dict[str, Any] = {
    "branchNumber": "1",
    "fantasyName": "",
    "legalName": "",
    "startDate": "",
    "cuit": "",
    "posNumber": "1",
    "address": "",
    "deliveryCost": 0,
    "serverIP": "",
    "lastSyncDate": "",
}


def get_setting(key: str, default: Any = None) -> Any:
    row = db.session.get(Setting, key)
    if row is None or row.value is None:
        return default
    return json.loads(row.value)


def set_setting(key: str, value: Any, *, commit: bool = True) -> Setting:
    row = db.session.get(Setting, key)
    encoded = json.dumps(value, default=str)
    if row is None:
        row = Setting(key=key, value=encoded)
        db.session.add(row)
    else:
        row.value = encoded
    if commit:
        db.session.commit()
    else:
        db.session.flush()
    return row


def delete_setting(key: str, *, commit: bool = True) -> bool:
    """Remove a key. Returns False when it was not there."""
    row = db.session.get(Setting, key)
    if row is None:
        return False
    db.session.delete(row)
    if commit:
        db.session.commit()
    return True


# =============================================================================
# COMPANY CONFIGURATION
# =============================================================================

def get_company_config() -> dict:
    """Company configuration with defaults filled in for unset fields."""
    return {
        field: get_setting(COMPANY_PREFIX + field, default)
        for field, default in COMPANY_DEFAULTS.items()
    }


def update_company_config(values: dict, *, commit: bool = True) -> dict:
    """
    Update some company fields.

    Unknown keys are rejected as a whole: nothing is written if any key is bad.
    lastSyncDate is owned by the sync gate but accepted here so that a restore
    can carry it.
    """
    unknown = sorted(set(values) - set(COMPANY_DEFAULTS))
    if unknown:
        raise ValidationError(f"Unknown configuration keys: {', '.join(unknown)}")

    cleaned = dict(values)
    if "deliveryCost" in cleaned:
        cleaned["deliveryCost"] = float(parse_amount(cleaned["deliveryCost"], "deliveryCost"))
    if "serverIP" in cleaned and cleaned["serverIP"] is not None:
        cleaned["serverIP"] = str(cleaned["serverIP"]).strip()

    for field, value in cleaned.items():
        set_setting(COMPANY_PREFIX + field, value, commit=False)

    if commit:
        db.session.commit()
    return get_company_config()


def get_delivery_cost() -> Decimal:
    return Decimal(str(get_setting(COMPANY_PREFIX + "deliveryCost", 0) or 0)).quantize(Decimal("0.01"))


def get_server_address() -> str:
    return (get_setting(COMPANY_PREFIX + "serverIP", "") or "").strip()


def get_last_sync_date() -> str:
    return get_setting(COMPANY_PREFIX + "lastSyncDate", "") or ""


def set_last_sync_date(value: str, *, commit: bool = True) -> None:
    set_setting(COMPANY_PREFIX + "lastSyncDate", value, commit=commit)
