"""
Base model configuration for SQLAlchemy ORM.

Provides abstract base classes with common functionality
for all database models: declarative base setup, dictionary
serialization and timestamp tracking.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, declarative_base, mapped_column

from app.utils.datetime_utils import isoformat_utc, utcnow

# Create declarative base
Base = declarative_base()


class BaseModel(Base):
    """
    Abstract base model with common methods.

    Provides foundation for all database models with
    standard functionality and utilities.
    """

    __abstract__ = True

    def to_dict(self, exclude: Optional[List[str]] = None) -> Dict[str, Any]:
        """
        Convert model instance to a JSON-ready dictionary.

        Args:
            exclude: List of field names to exclude

        Returns:
            Dictionary representation of the model
        """
        exclude = exclude or []
        result = {}

        for column in self.__table__.columns:
            if column.name not in exclude:
                value = getattr(self, column.name)

                # Handle special types
                if isinstance(value, datetime):
                    result[column.name] = isoformat_utc(value)
                elif isinstance(value, Decimal):
                    result[column.name] = float(value)
                else:
                    result[column.name] = value

        return result

    def __repr__(self) -> str:
        pk = ", ".join(
            f"{column.name}={getattr(self, column.name)!r}"
            for column in self.__table__.primary_key.columns
        )
        return f"<{self.__class__.__name__}({pk})>"


class TimestampModel(BaseModel):
    """
    Base model with automatic timestamp tracking.

    Includes created_at and updated_at fields (naive UTC) with
    automatic management.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        index=True,
        comment="Record creation timestamp (UTC)"
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
        comment="Record last update timestamp (UTC)"
    )
