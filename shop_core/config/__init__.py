# =============================================================================
# shop_core/config/__init__.py
# Configuration
# =============================================================================

from .settings import (
    EnvMode,
    RemoteStoreConfig,
    StorageKeys,
    SyncConfig,
    clear_remote_config,
    load_sync_config,
    parse_remote_config,
    read_env_mode,
    save_remote_config,
    switch_env_mode,
)

__all__ = [
    "EnvMode",
    "RemoteStoreConfig",
    "StorageKeys",
    "SyncConfig",
    "clear_remote_config",
    "load_sync_config",
    "parse_remote_config",
    "read_env_mode",
    "save_remote_config",
    "switch_env_mode",
]
