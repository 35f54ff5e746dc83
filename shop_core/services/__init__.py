# =============================================================================
# shop_core/services/__init__.py
# Service Layer
# =============================================================================

from .base_service import BaseService, ServiceResult

__all__ = ["BaseService", "ServiceResult"]
