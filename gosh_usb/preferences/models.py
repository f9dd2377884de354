"""Preference ORM model.

Preferences are stored as plain string key/value rows so that each key
can be read independently with its own fallback.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from gosh_usb.db import Base


class Preference(Base):
    """ORM model for a single persisted preference.

    Attributes:
        key: Storage key (e.g., 'gosh-usb-theme').
        value: Raw string value.
        updated_at: Timestamp of last update.
    """

    __tablename__ = "preferences"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return f"<Preference(key={self.key!r}, value={self.value!r})>"


__all__ = ["Preference"]
