# =============================================================================
# shop_core/errors/exceptions.py
# Custom Exception Hierarchy for the print shop order tracker
# =============================================================================

from typing import Optional, Dict, Any


class PrintShopError(Exception):
    """
    Base exception for all order tracker errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (e.g., "REMOTE_002")
        details: Additional context as a dictionary
        recoverable: Whether the error can be recovered from
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        recoverable: bool = True,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "PS_000"
        self.details = details or {}
        self.recoverable = recoverable

    def __str__(self) -> str:
        base = f"[{self.code}] {self.message}"
        if self.details:
            base += f" | Details: {self.details}"
        return base

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/serialization"""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# CONFIGURATION EXCEPTIONS
# =============================================================================

class ConfigInvalidError(PrintShopError):
    """Raised when stored remote credentials are missing or malformed"""

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if config_key:
            details["config_key"] = config_key

        super().__init__(
            message=message,
            code="CONFIG_001",
            details=details,
            **kwargs,
        )


# =============================================================================
# REMOTE STORE EXCEPTIONS
# =============================================================================

class RemoteConstructError(PrintShopError):
    """Raised when the remote client cannot be built from credentials"""

    def __init__(self, message: str, url: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if url:
            details["url"] = url

        super().__init__(
            message=message,
            code="REMOTE_001",
            details=details,
            **kwargs,
        )


class RemoteCallError(PrintShopError):
    """Raised when a select/insert/update/delete/subscribe call fails"""

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        operation: Optional[str] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        if table:
            details["table"] = table
        if operation:
            details["operation"] = operation

        super().__init__(
            message=message,
            code="REMOTE_002",
            details=details,
            **kwargs,
        )


# =============================================================================
# LOCAL STORE EXCEPTIONS
# =============================================================================

class LocalParseError(PrintShopError):
    """Raised when a stored blob cannot be decoded"""

    def __init__(self, message: str, key: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if key:
            details["key"] = key

        super().__init__(
            message=message,
            code="LOCAL_001",
            details=details,
            **kwargs,
        )


# =============================================================================
# ORDER EXCEPTIONS
# =============================================================================

class OrderNotFoundError(PrintShopError):
    """Raised when a mutation targets an order id that is not in the snapshot"""

    def __init__(self, order_id: str, **kwargs):
        details = kwargs.pop("details", {})
        details["order_id"] = order_id

        super().__init__(
            message=f"Order {order_id} not found",
            code="ORDER_001",
            details=details,
            **kwargs,
        )


class OrderValidationError(PrintShopError):
    """Raised when an order or draft breaks a domain invariant"""

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        details = kwargs.pop("details", {})
        if field:
            details["field"] = field

        super().__init__(
            message=message,
            code="ORDER_002",
            details=details,
            **kwargs,
        )
