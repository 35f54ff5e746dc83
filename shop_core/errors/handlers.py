# =============================================================================
# shop_core/errors/handlers.py
# Error Handling Utilities for the print shop order tracker
# =============================================================================

from __future__ import annotations
import traceback
from typing import Optional, Callable, TypeVar
import streamlit as st

from shop_core.logging import get_logger
from .exceptions import PrintShopError

logger = get_logger(__name__)

T = TypeVar("T")


def handle_error(
    error: Exception,
    show_user_message: bool = True,
    log_error: bool = True,
    user_message: Optional[str] = None,
) -> None:
    """
    Centralized error handling function.

    Args:
        error: The exception to handle
        show_user_message: Whether to display error to user via st.error
        log_error: Whether to log the error
        user_message: Custom message to show user (uses error message if None)
    """
    if isinstance(error, PrintShopError):
        message = user_message or error.message
        code = error.code
        details = error.details
        recoverable = error.recoverable
    else:
        message = user_message or str(error)
        code = "UNKNOWN"
        details = {"traceback": traceback.format_exc()}
        recoverable = True

    if log_error:
        logger.error(
            f"[{code}] {message}",
            extra={"details": details},
        )

    if show_user_message:
        if recoverable:
            st.error(f"Error: {message}")
        else:
            st.error(f"Critical Error: {message}. Please contact support.")


def safe_execute(
    func: Callable[..., T],
    *args,
    default: Optional[T] = None,
    error_message: Optional[str] = None,
    show_user_message: bool = False,
    **kwargs,
) -> Optional[T]:
    """
    Execute a function with automatic error handling.

    Usage:
        colors = safe_execute(
            parse_colors,
            blob,
            default=default_parts_colors(),
            error_message="Stored colour catalog is unreadable"
        )
    """
    try:
        return func(*args, **kwargs)
    except Exception as e:
        handle_error(e, show_user_message=show_user_message, user_message=error_message)
        return default
