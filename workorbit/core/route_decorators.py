"""
Route Decorators for logging and error reporting around route handlers
"""

import functools
import logging
from typing import Callable, Any

from workorbit.core.exceptions import BaseAPIException

logger = logging.getLogger(__name__)


def handle_service_errors(func: Callable) -> Callable:
    """Log unexpected errors escaping a route handler before the global handlers render them."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs) -> Any:
        try:
            return await func(*args, **kwargs)
        except BaseAPIException:
            raise
        except Exception as e:
            logger.error(f"Unexpected error in {func.__name__}: {type(e).__name__}: {str(e)}")
            raise

    return wrapper


def log_route_access(func: Callable) -> Callable:
    """Log route access with the acting user for auditing."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs) -> Any:
        log_data = {
            "function": func.__name__,
            "route_module": func.__module__
        }

        current_user = kwargs.get("current_user")
        if current_user is not None:
            log_data.update({
                "user_id": str(current_user.id),
                "user_email": current_user.email,
                "user_role": getattr(current_user.role, "value", current_user.role)
            })

        logger.info(f"Route access: {func.__name__}", extra=log_data)

        return await func(*args, **kwargs)

    return wrapper
