# =============================================================================
# shop_core/offline/__init__.py
# Offline-capable order storage
# =============================================================================
"""
Online/offline order handling.

    ┌───────────────────────────────────────────────┐
    │              OrderSyncController              │
    │   (owns the snapshot, routes every mutation)  │
    └───────────────────────────────────────────────┘
                 │                        │
                 ▼                        ▼
        ┌────────────────┐       ┌────────────────┐
        │  RemoteStore   │       │   LocalStore   │
        │ (Supabase, RT) │       │ (SQLite blobs) │
        └────────────────┘       └────────────────┘

Exactly one side is active per start-up; there is no queue or replay
between them.
"""

from shop_core.offline.local_store import LocalStore
from shop_core.offline.sync_controller import OrderSyncController

__all__ = [
    "LocalStore",
    "OrderSyncController",
]
