"""Guarded actions: the boundary wrapper for mutating service operations.

AppErrors pass through untouched (they already carry a user-facing message).
Anything else is logged with its traceback and replaced by a generic
"Failed to ..." error so raw driver/stack details never reach the caller.
"""

import functools
import logging
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from src.sf_common.errors import AppError, InternalError, PersistenceError

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def guarded(
    failure_message: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    def decorator(fn: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @functools.wraps(fn)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return await fn(*args, **kwargs)
            except AppError:
                raise
            except SQLAlchemyError:
                logger.exception("%s: persistence failure in %s", failure_message, fn.__qualname__)
                raise PersistenceError(failure_message) from None
            except Exception:
                logger.exception("%s: unexpected error in %s", failure_message, fn.__qualname__)
                raise InternalError(failure_message) from None

        return wrapper

    return decorator
