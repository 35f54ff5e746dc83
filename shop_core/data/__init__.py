# =============================================================================
# shop_core/data/__init__.py
# Remote store access and record codecs
# =============================================================================
