# =============================================================================
# shop_core/config/settings.py
# Sync Configuration: remote credentials, environment mode, storage keys
# =============================================================================
"""
Configuration for the order sync controller.

Everything the controller needs is gathered into one ``SyncConfig`` value
that is passed to its constructor. Credentials are resolved in this order:

1. JSON blob saved on this device (``app-supabase-config`` or, in test mode,
   ``app-supabase-config-test``)
2. Streamlit secrets (``[supabase] url / key``), production only
3. ``SUPABASE_URL`` / ``SUPABASE_KEY`` environment variables, production only

A stored blob that is present but malformed is not silently replaced by
secrets: the controller runs offline until the blob is fixed or cleared.
Malformed secrets, on the other hand, fall through to the environment
variables.
"""

from __future__ import annotations
import json
import os
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Union
import logging

import streamlit as st

from shop_core.errors import ConfigInvalidError

logger = logging.getLogger(__name__)


class EnvMode(str, Enum):
    PROD = "prod"
    TEST = "test"


@dataclass(frozen=True)
class StorageKeys:
    """Keys of the blobs kept in the device-local store."""
    remote_config: str = "app-supabase-config"
    remote_config_test: str = "app-supabase-config-test"
    env_mode: str = "app-env-mode"
    orders: str = "3d-print-orders"
    parts_colors: str = "app-parts-colors"
    textures: str = "app-textures-v2"
    legacy_textures: str = "app-textures"

    def remote_config_for(self, env_mode: EnvMode) -> str:
        return self.remote_config_test if env_mode == EnvMode.TEST else self.remote_config


@dataclass(frozen=True)
class RemoteStoreConfig:
    """Supabase project URL and anon key."""
    url: str
    key: str

    def to_record(self) -> Dict[str, str]:
        return {"supabaseUrl": self.url, "supabaseKey": self.key}

    def __repr__(self) -> str:
        return f"RemoteStoreConfig(url={self.url!r}, key='***')"


@dataclass(frozen=True)
class SyncConfig:
    remote: Optional[RemoteStoreConfig] = None
    env_mode: EnvMode = EnvMode.PROD
    normalize_customers: bool = False
    alert_user: bool = False
    orders_table: str = "orders"
    customers_table: str = "customers"
    colors_table: str = "colors"
    textures_table: str = "textures"
    channel_name: str = "orders_channel"
    order_by: str = "createdAt"
    storage_keys: StorageKeys = field(default_factory=StorageKeys)

    @property
    def is_test_mode(self) -> bool:
        return self.env_mode == EnvMode.TEST

    def with_remote(self, remote: Optional[RemoteStoreConfig]) -> SyncConfig:
        return replace(self, remote=remote)


def parse_remote_config(blob: Union[str, Dict[str, Any], None], source: str = "config") -> RemoteStoreConfig:
    """
    Validate a credential blob.

    Accepts the JSON text saved by the admin screen or an already-decoded
    mapping. Both values must be non-empty strings; surrounding whitespace is
    trimmed.

    Raises:
        ConfigInvalidError: blob is missing or structurally invalid
    """
    if blob is None or blob == "":
        raise ConfigInvalidError("No remote credentials configured", config_key=source)

    data = blob
    if isinstance(blob, str):
        try:
            data = json.loads(blob)
        except json.JSONDecodeError as e:
            raise ConfigInvalidError(f"Credentials are not valid JSON: {e}", config_key=source) from e

    if not isinstance(data, dict):
        raise ConfigInvalidError("Credentials must be an object", config_key=source)

    url = data.get("supabaseUrl", data.get("url"))
    key = data.get("supabaseKey", data.get("key"))
    if not isinstance(url, str) or not isinstance(key, str):
        raise ConfigInvalidError("Credentials need a URL and a key", config_key=source)

    url, key = url.strip(), key.strip()
    if not url or not key:
        raise ConfigInvalidError("Credentials need a URL and a key", config_key=source)

    return RemoteStoreConfig(url=url, key=key)


def read_env_mode(local_store) -> EnvMode:
    value = local_store.get(StorageKeys().env_mode)
    try:
        return EnvMode(value) if value else EnvMode.PROD
    except ValueError:
        logger.warning(f"Unknown environment mode {value!r}, using prod")
        return EnvMode.PROD


def _secrets_config() -> Optional[Dict[str, Any]]:
    """Supabase section of Streamlit secrets, if there is one."""
    try:
        if "supabase" in st.secrets:
            return dict(st.secrets["supabase"])
    except Exception as e:
        # No secrets.toml outside of a configured Streamlit deployment
        logger.debug(f"Streamlit secrets unavailable: {e}")
    return None


def _env_config() -> Optional[Dict[str, Any]]:
    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_KEY")
    if url and key:
        return {"url": url, "key": key}
    return None


def load_sync_config(local_store, **overrides) -> SyncConfig:
    """
    Build the SyncConfig for this device.

    Invalid or missing credentials are logged and yield ``remote=None``
    (offline mode); this never raises.
    """
    keys = overrides.pop("storage_keys", None) or StorageKeys()
    env_mode = overrides.pop("env_mode", None) or read_env_mode(local_store)
    config_key = keys.remote_config_for(env_mode)

    stored = local_store.get(config_key)
    if stored is not None:
        candidates = [(config_key, stored)]
    elif env_mode == EnvMode.PROD:
        candidates = [("secrets", _secrets_config()), ("environment", _env_config())]
    else:
        candidates = []

    remote = None
    for source, blob in candidates:
        if blob is None:
            continue
        try:
            remote = parse_remote_config(blob, source=source)
        except ConfigInvalidError as e:
            # a stored blob is the only candidate, so this never reaches secrets
            logger.warning(f"Ignoring remote credentials from {source}: {e}")
            continue
        logger.info(f"Remote credentials loaded from {source}")
        break

    if remote is None:
        logger.info(f"No usable remote credentials for {env_mode.value} mode")

    return SyncConfig(remote=remote, env_mode=env_mode, storage_keys=keys, **overrides)


def save_remote_config(local_store, config: RemoteStoreConfig, env_mode: EnvMode = EnvMode.PROD) -> None:
    local_store.set(StorageKeys().remote_config_for(env_mode), json.dumps(config.to_record()))


def clear_remote_config(local_store) -> None:
    """Forget stored credentials for both environments and the mode switch."""
    keys = StorageKeys()
    for key in (keys.remote_config, keys.remote_config_test, keys.env_mode):
        local_store.delete(key)


def switch_env_mode(local_store, target: EnvMode) -> bool:
    """
    Persist the environment mode.

    Switching to test mode requires test credentials to be saved first.
    """
    keys = StorageKeys()
    if target == EnvMode.TEST and local_store.get(keys.remote_config_test) is None:
        logger.warning("Test database is not configured, staying in current mode")
        return False
    local_store.set(keys.env_mode, target.value)
    return True
