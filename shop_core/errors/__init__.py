# =============================================================================
# shop_core/errors/__init__.py
# Centralized Error Handling for the print shop order tracker
# =============================================================================

from .exceptions import (
    PrintShopError,
    ConfigInvalidError,
    RemoteConstructError,
    RemoteCallError,
    LocalParseError,
    OrderNotFoundError,
    OrderValidationError,
)

from .handlers import (
    handle_error,
    safe_execute,
)

__all__ = [
    # Exceptions
    "PrintShopError",
    "ConfigInvalidError",
    "RemoteConstructError",
    "RemoteCallError",
    "LocalParseError",
    "OrderNotFoundError",
    "OrderValidationError",
    # Handlers
    "handle_error",
    "safe_execute",
]
