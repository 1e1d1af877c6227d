"""Error handling decorators"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import Any, ParamSpec, TypeVar, cast

from .base import ApplicationError, ErrorLevel
from .error_context import ErrorContextManager
from .logging import get_logger

logger = get_logger(__name__)
P = ParamSpec("P")
T = TypeVar("T")


def _log_failure(func_name: str, error: Exception, level: ErrorLevel, context: dict[str, Any]) -> None:
    logger.log(
        level.to_logging_level(),
        f"Error in {func_name}: {error!s}",
        function=func_name,
        error_context=context,
        exc_info=True,
    )


def with_error_handling(
    error_level: ErrorLevel = ErrorLevel.ERROR,
    reraise: bool = True,
    operation: str | None = None,
) -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Decorator for handling errors in functions.

    ApplicationErrors are logged at their own level, anything else at
    ``error_level``. With ``reraise=False`` the wrapped call returns None
    after logging, which is how non-critical steps degrade to a no-op.

    Args:
        error_level: Severity level for logging non-application errors
        reraise: Whether to re-raise the error after logging
        operation: Operation name recorded with the error context
            (defaults to the function name)

    Returns:
        Decorated function with error handling
    """

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        original_signature = inspect.signature(func)
        op_name = operation or func.__name__

        def level_for(error: Exception) -> ErrorLevel:
            return error.level if isinstance(error, ApplicationError) else error_level

        if asyncio.iscoroutinefunction(func):

            @wraps(func)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
                try:
                    return await cast("Callable[P, Awaitable[T]]", func)(*args, **kwargs)
                except Exception as e:
                    async with ErrorContextManager(e, operation=op_name) as ctx:
                        _log_failure(func.__name__, e, level_for(e), ctx.to_dict())
                    if reraise:
                        raise
                    return cast("T", None)

            async_wrapper.__signature__ = original_signature  # type: ignore[attr-defined]
            return cast("Callable[P, T]", async_wrapper)

        @wraps(func)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            try:
                return func(*args, **kwargs)
            except Exception as e:
                with ErrorContextManager(e, operation=op_name) as ctx:
                    _log_failure(func.__name__, e, level_for(e), ctx.to_dict())
                if reraise:
                    raise
                return cast("T", None)

        sync_wrapper.__signature__ = original_signature  # type: ignore[attr-defined]
        return sync_wrapper

    return decorator


def with_session(driver_attr: str = "driver") -> Callable[[Callable[P, T]], Callable[P, T]]:
    """Decorator to manage the Neo4j session lifecycle.

    The wrapped coroutine receives an open ``AsyncSession`` as its first
    argument after ``self``:

        @with_session()
        async def load(self, session, session_id):
            result = await session.run(query, session_id=session_id)
    """

    def decorator(func: Callable[P, T]) -> Callable[P, T]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            if not args:
                raise ValueError(f"{func.__name__} requires at least 'self' argument")

            self_obj = args[0]
            driver = getattr(self_obj, driver_attr, None)
            if driver is None:
                raise AttributeError(
                    f"Object {self_obj.__class__.__name__} has no attribute '{driver_attr}'. "
                    f"Either provide the correct driver_attr or ensure the object has a driver."
                )

            async with driver.session() as session:
                new_args = (args[0], session) + args[1:]
                return await func(*new_args, **kwargs)  # type: ignore[misc]

        return cast("Callable[P, T]", wrapper)

    return decorator
