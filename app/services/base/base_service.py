"""
Shared plumbing for the service layer: session, settings, logger,
commit/rollback handling and post-commit broadcasting.
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from app.config.settings import Settings, get_settings
from app.core.events import Broadcaster
from app.core.exceptions import BaseAppException, StoreUnavailableError
from app.core.logging import get_logger


class BaseService:
    """
    Services own one SQLAlchemy session for their lifetime. Writes go
    through ``transaction()``; events go out through ``_publish`` only
    once the write is committed.
    """

    def __init__(
        self,
        db_session: Session,
        settings: Optional[Settings] = None,
        broadcaster: Optional[Broadcaster] = None,
    ):
        self.db: Session = db_session
        self.settings: Settings = settings or get_settings()
        # None disables publishing (scripts, some tests)
        self.broadcaster = broadcaster
        self._logger = get_logger(type(self).__name__)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Commit the session when the block exits cleanly, roll back otherwise.

        A lost connection surfaces as StoreUnavailableError; every other
        exception is re-raised as is after the rollback.

            with self.transaction():
                self.orders.create(order)
        """
        try:
            yield self.db
            self.db.commit()
        except OperationalError as e:
            self._safe_rollback()
            self._logger.error(f"Store unavailable, transaction aborted: {e.orig}", exc_info=True)
            raise StoreUnavailableError(operation="transaction", original_error=str(e.orig)) from e
        except BaseAppException:
            self._safe_rollback()
            raise
        except Exception as e:
            self._safe_rollback()
            self._logger.warning(f"Transaction rolled back after {type(e).__name__}: {e}")
            raise

    def _safe_rollback(self) -> None:
        try:
            self.db.rollback()
        except Exception as e:
            self._logger.warning(f"Rollback itself failed: {e}")

    def _publish(self, deliveries: List[Tuple[str, str]], data: Dict[str, Any]) -> None:
        """
        Fan ``data`` out to ``(topic, event)`` pairs.

        Only called after commit; a broadcast failure is logged and the
        committed write stands.
        """
        if self.broadcaster is None:
            return
        try:
            self.broadcaster.publish_many(deliveries, data)
        except Exception as e:
            self._logger.error(
                f"Broadcast of {[event for _, event in deliveries]} failed: {e}",
                exc_info=True,
            )
