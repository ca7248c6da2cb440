"""
Declarative base and abstract models for the scheduling tables.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Iterable, Optional
from uuid import uuid4

from sqlalchemy import Enum as SAEnum, String
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

from exam_scheduler.models.base.mixins import TimestampMixin

Base = declarative_base()


def _plain(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    return value


class BaseModel(Base):
    """Abstract row keyed by a UUID string."""

    __abstract__ = True

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=lambda: str(uuid4()))

    def to_dict(self, exclude: Optional[Iterable[str]] = None) -> Dict[str, Any]:
        """
        Column values as JSON-safe primitives.

        Dates become ISO strings and enums their values, which is the shape
        stored in audit metadata.
        """
        skip = set(exclude or ())
        return {
            column.name: _plain(getattr(self, column.key))
            for column in self.__table__.columns
            if column.name not in skip
        }

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} {self.id}>"


class TimestampModel(BaseModel, TimestampMixin):
    __abstract__ = True


def str_enum(enum_cls, name: str) -> SAEnum:
    """Enum column type storing the member values as plain strings."""
    return SAEnum(
        enum_cls,
        name=name,
        native_enum=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
        validate_strings=True,
    )
