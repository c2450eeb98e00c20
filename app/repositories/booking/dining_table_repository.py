"""
Dining table repository.

Claiming a table bumps its version column; SQLAlchemy turns a concurrent
claim into ``StaleDataError`` at flush time.
"""

from typing import Dict

from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from app.models.booking import DiningTable
from app.repositories.base.base_repository import BaseRepository
from app.utils.datetime_utils import utcnow


class DiningTableRepository(BaseRepository[DiningTable]):

    resource_name = "Table"

    def __init__(self, db: Session):
        super().__init__(DiningTable, db)

    def snapshot(self, total_tables: int) -> Dict[int, DiningTable]:
        """
        Rows for tables ``1..total_tables`` keyed by number.

        Missing rows are created on the fly; a concurrent creator makes
        the flush fail with IntegrityError.
        """
        rows = {
            table.table_number: table
            for table in self.find_by_criteria(
                where=[DiningTable.table_number <= total_tables],
                order_by=[DiningTable.table_number.asc()],
            )
        }
        missing = [n for n in range(1, total_tables + 1) if n not in rows]
        for number in missing:
            rows[number] = self.create(DiningTable(table_number=number))
        return rows

    def claim(self, table: DiningTable) -> DiningTable:
        """Bump the table's version; raises StaleDataError if someone else did first."""
        table.last_booked_at = utcnow()
        flag_modified(table, "last_booked_at")
        with self._store_operation("claim"):
            self.db.flush()
        return table
