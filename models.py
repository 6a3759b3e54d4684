from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict
from sqlalchemy import DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class OfficeBearer(Base):
    """A stored office bearer row."""

    __tablename__ = "office_bearers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    position: Mapped[Optional[str]] = mapped_column(String(255))
    department: Mapped[Optional[str]] = mapped_column(String(255))
    address: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"OfficeBearer(id={self.id!r}, email={self.email!r})"


# Emails are unique regardless of case; this is the final guard against concurrent uploads
Index("ix_office_bearers_email_lower", func.lower(OfficeBearer.email), unique=True)


class StoredOfficeBearer(BaseModel):
    """
    API representation of a persisted office bearer.

    Attributes:
        id: Identifier assigned by the database
        name: Full name
        email: Email address as uploaded
        phone, position, department, address: Optional details, null when blank
        created_at: When the row was inserted
        updated_at: When the row was last changed
    """
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    phone: Optional[str] = None
    position: Optional[str] = None
    department: Optional[str] = None
    address: Optional[str] = None
    created_at: datetime
    updated_at: datetime
