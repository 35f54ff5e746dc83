# =============================================================================
# shop_core/models/__init__.py
# Domain Models
# =============================================================================

from .orders import (
    Customer,
    CustomerType,
    Order,
    OrderDraft,
    OrderStatus,
    PrintStatus,
    ProductConfig,
    TextureMode,
    new_id,
    to_price,
    utc_now_iso,
)
from .catalog import (
    ColorOption,
    PartsColors,
    Texture,
    DEFAULT_COLORS,
    DEFAULT_TEXTURES,
)

__all__ = [
    "Customer",
    "CustomerType",
    "Order",
    "OrderDraft",
    "OrderStatus",
    "PrintStatus",
    "ProductConfig",
    "TextureMode",
    "new_id",
    "to_price",
    "utc_now_iso",
    "ColorOption",
    "PartsColors",
    "Texture",
    "DEFAULT_COLORS",
    "DEFAULT_TEXTURES",
]
