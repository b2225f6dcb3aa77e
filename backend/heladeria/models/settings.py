from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class Setting(db.Model):
    """
    Local key-value settings area.

    Values are JSON text so numbers, strings and small objects round-trip.
    """
    __tablename__ = "settings"

    key = db.Column(db.String(128), primary_key=True)
    value = db.Column(db.Text, nullable=True)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "value": self.value,
            "updated_at": to_utc_z(self.updated_at),
        }
