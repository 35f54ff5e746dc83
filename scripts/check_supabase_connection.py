# =============================================================================
# scripts/check_supabase_connection.py
# Verify Supabase credentials and optionally store them on this device
# =============================================================================
"""
Usage:
    python scripts/check_supabase_connection.py
    python scripts/check_supabase_connection.py --url https://xyz.supabase.co --key ANON --save
    python scripts/check_supabase_connection.py --env test --url ... --key ... --save
"""

from __future__ import annotations
import argparse
import asyncio
import sys
from pathlib import Path

project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import toml

from shop_core.config import (
    EnvMode,
    RemoteStoreConfig,
    StorageKeys,
    parse_remote_config,
    save_remote_config,
)
from shop_core.data.supabase_client import check_connection
from shop_core.errors import ConfigInvalidError
from shop_core.logging import setup_logging
from shop_core.offline import LocalStore


def resolve_config(args, store: LocalStore) -> RemoteStoreConfig:
    if args.url or args.key:
        return parse_remote_config({"url": args.url or "", "key": args.key or ""}, source="command line")

    env_mode = EnvMode(args.env)
    stored = store.get(StorageKeys().remote_config_for(env_mode))
    if stored is not None:
        return parse_remote_config(stored, source="local store")

    secrets_path = project_root / ".streamlit" / "secrets.toml"
    if env_mode == EnvMode.PROD and secrets_path.exists():
        secrets = toml.load(secrets_path)
        return parse_remote_config(secrets.get("supabase"), source=str(secrets_path))

    raise ConfigInvalidError("No credentials given, stored or found in secrets.toml")


def run(args, store: LocalStore) -> int:
    try:
        config = resolve_config(args, store)
    except ConfigInvalidError as e:
        print(f"Configuration error: {e.message}")
        return 2

    print(f"Testing {config.url} ({args.env})...")
    ok, message = asyncio.run(check_connection(config))
    if not ok:
        print(f"FAILED: {message}")
        return 1

    print("Connection OK")
    if args.save:
        save_remote_config(store, config, EnvMode(args.env))
        print(f"Credentials saved for {args.env}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Check Supabase credentials for the order tracker")
    parser.add_argument("--url", help="Supabase project URL")
    parser.add_argument("--key", help="Supabase anon key")
    parser.add_argument("--env", choices=[m.value for m in EnvMode], default=EnvMode.PROD.value)
    parser.add_argument("--db", type=Path, default=None, help="Local store path")
    parser.add_argument("--save", action="store_true", help="Store the credentials if the check passes")
    args = parser.parse_args()

    setup_logging(log_to_file=False)
    store = LocalStore(args.db)
    try:
        return run(args, store)
    finally:
        store.close()


if __name__ == "__main__":
    sys.exit(main())
