from __future__ import annotations

import functools
import logging
from typing import Callable, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from services.errors import StoreError

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable)


def store_operation(name: str) -> Callable[[F], F]:
    """
    Wrap a DAO method: SQLAlchemy failures roll the session back and surface
    as StoreError. The DAO instance must expose ``self.session``.
    """
    def deco(fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(self, *args, **kwargs):
            try:
                return fn(self, *args, **kwargs)
            except SQLAlchemyError as exc:
                logger.error("Store operation %s failed: %s", name, exc)
                self.session.rollback()
                raise StoreError(message=f"{name} failed: {exc}", operation=name) from exc
        return wrapper  # type: ignore[return-value]
    return deco
