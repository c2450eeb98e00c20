"""
Dining table model.

One row per physical table. The ``version`` column is the optimistic
lock every booking commit bumps, so two transactions that picked the
same table cannot both commit.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base.base_model import BaseModel

__all__ = [
    "DiningTable",
]


class DiningTable(BaseModel):
    """Physical table with a version counter for booking claims"""

    __tablename__ = "dining_tables"

    table_number: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    last_booked_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    __mapper_args__ = {"version_id_col": version}
