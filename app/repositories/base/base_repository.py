"""
Base repository with standardized CRUD operations and error handling.

Provides foundation for all domain repositories. Repositories flush but
never commit; the owning service decides the transaction boundary.
"""

from contextlib import contextmanager
from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from sqlalchemy import select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.core.exceptions import ResourceNotFoundError, StoreUnavailableError
from app.core.logging import get_logger
from app.models.base import BaseModel

logger = get_logger(__name__)

# Type variable for model classes
ModelType = TypeVar("ModelType", bound=BaseModel)


class BaseRepository(Generic[ModelType]):
    """
    Base repository with standardized operations.

    Provides insert-returning, select-with-filter-and-order and
    update-returning operations over one model.
    """

    resource_name = "Resource"

    def __init__(self, model: Type[ModelType], db: Session):
        """
        Initialize repository.

        Args:
            model: SQLAlchemy model class
            db: Database session
        """
        self.model = model
        self.db = db

    @contextmanager
    def _store_operation(self, operation: str):
        """Translate driver-level outages into StoreUnavailableError."""
        try:
            yield
        except OperationalError as e:
            logger.error(
                f"{self.model.__name__} {operation} failed: {e.orig}",
                extra={'operation': operation},
            )
            raise StoreUnavailableError(
                operation=f"{self.model.__tablename__}.{operation}",
                original_error=str(e.orig),
            ) from e

    # ==================== Create Operations ====================

    def create(self, entity: ModelType) -> ModelType:
        """
        Add a new entity and flush it so defaults are populated.

        Returns:
            The persisted entity
        """
        with self._store_operation("create"):
            self.db.add(entity)
            self.db.flush()
        return entity

    # ==================== Read Operations ====================

    def find_by_id(self, entity_id: Any) -> Optional[ModelType]:
        """Find entity by primary key."""
        with self._store_operation("find_by_id"):
            return self.db.get(self.model, entity_id)

    def get_by_id(self, entity_id: Any) -> ModelType:
        """
        Get entity by primary key or raise.

        Raises:
            ResourceNotFoundError: If entity not found
        """
        entity = self.find_by_id(entity_id)
        if entity is None:
            raise ResourceNotFoundError(self.resource_name, str(entity_id))
        return entity

    def find_by_criteria(
        self,
        criteria: Optional[Dict[str, Any]] = None,
        order_by: Optional[List[Any]] = None,
        where: Optional[List[Any]] = None,
    ) -> List[ModelType]:
        """
        Select entities matching equality ``criteria`` and extra ``where``
        clauses, in ``order_by`` order.
        """
        stmt = select(self.model)
        for field, value in (criteria or {}).items():
            stmt = stmt.where(getattr(self.model, field) == value)
        for clause in where or []:
            stmt = stmt.where(clause)
        if order_by:
            stmt = stmt.order_by(*order_by)

        with self._store_operation("find_by_criteria"):
            return list(self.db.scalars(stmt))

    # ==================== Update Operations ====================

    def update(self, entity: ModelType, data: Dict[str, Any]) -> ModelType:
        """
        Apply ``data`` to ``entity`` and flush.

        Returns:
            The updated entity
        """
        for field, value in data.items():
            setattr(entity, field, value)
        with self._store_operation("update"):
            self.db.flush()
        return entity
