# =============================================================================
# shop_core/__init__.py
# Order intake and production tracking core for the 3D print shop
# =============================================================================
