# =============================================================================
# shop_core/data/supabase_client.py
# Supabase Remote Store: async CRUD and realtime change feed
# =============================================================================

from __future__ import annotations
import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

from supabase import AsyncClient, acreate_client

from shop_core.config import RemoteStoreConfig
from shop_core.data.codec import customer_to_row
from shop_core.errors import RemoteCallError, RemoteConstructError
from shop_core.models.orders import Customer

logger = logging.getLogger(__name__)


ChangeCallback = Callable[[Dict[str, Any]], None]


async def create_remote_store(config: RemoteStoreConfig) -> RemoteStore:
    """
    Build a RemoteStore from credentials.

    No request is made; only client construction has to succeed.

    Raises:
        RemoteConstructError: the supabase client could not be created
    """
    try:
        client = await acreate_client(config.url, config.key)
    except Exception as e:
        raise RemoteConstructError(f"Failed to initialize Supabase client: {e}", url=config.url) from e
    logger.info("Supabase client initialized")
    return RemoteStore(client)


async def check_connection(config: RemoteStoreConfig, table: str = "orders") -> Tuple[bool, Optional[str]]:
    """
    Check credentials against a live project before saving them.

    Returns:
        (success, message) where message explains a failure
    """
    if not config.url.startswith("https://"):
        return False, "The project URL must start with https://"

    try:
        client = await acreate_client(config.url, config.key)
        await client.table(table).select("id").limit(1).execute()
    except Exception as e:
        code = getattr(e, "code", None)
        message = getattr(e, "message", None) or str(e)
        if code == "PGRST204" or code == "42P01" or "does not exist" in message:
            return False, f'Connected, but the "{table}" table does not exist. Run the setup SQL first.'
        if "JWT" in message or "Invalid API key" in message:
            return False, "API key (anon key) is invalid or expired."
        if "ConnectError" in type(e).__name__ or "Network" in message or "getaddrinfo" in message:
            return False, "Network error. Check the project URL."
        return False, f"Supabase error: {message}"

    return True, None


class Subscription:
    """Handle on a realtime channel; ``cancel()`` unregisters the listener."""

    def __init__(self, client: AsyncClient, channel, table: str):
        self._client = client
        self._channel = channel
        self.table = table
        self.active = True

    async def cancel(self) -> None:
        if not self.active:
            return
        self.active = False
        try:
            await self._client.remove_channel(self._channel)
        except Exception as e:
            raise RemoteCallError(f"Failed to remove channel: {e}", table=self.table, operation="unsubscribe") from e
        logger.debug(f"Unsubscribed from {self.table} changes")


class RemoteStore:
    """
    Collection-style access to Supabase tables.

    Every backend failure is re-raised as ``RemoteCallError`` so callers deal
    with a single exception type.
    """

    def __init__(self, client: AsyncClient):
        self.client = client

    async def _run(self, table: str, operation: str, build: Callable[[], Any]) -> List[Dict[str, Any]]:
        try:
            response = await build().execute()
        except Exception as e:
            raise RemoteCallError(f"{operation} on {table} failed: {e}", table=table, operation=operation) from e
        return response.data or []

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[Dict[str, Any]] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        def build():
            query = self.client.table(table).select(columns)
            for col, val in (filters or {}).items():
                query = query.eq(col, val)
            if order_by:
                query = query.order(order_by, desc=descending)
            if limit:
                query = query.limit(limit)
            return query

        return await self._run(table, "select", build)

    async def insert(self, table: str, record: Dict[str, Any]) -> List[Dict[str, Any]]:
        return await self._run(table, "insert", lambda: self.client.table(table).insert(record))

    async def update(
        self,
        table: str,
        record_id: Any,
        patch: Dict[str, Any],
        id_column: str = "id",
    ) -> List[Dict[str, Any]]:
        return await self._run(
            table, "update", lambda: self.client.table(table).update(patch).eq(id_column, record_id)
        )

    async def delete(self, table: str, record_id: Any, id_column: str = "id") -> List[Dict[str, Any]]:
        return await self._run(
            table, "delete", lambda: self.client.table(table).delete().eq(id_column, record_id)
        )

    async def subscribe(
        self,
        table: str,
        on_event: ChangeCallback,
        event: str = "*",
        channel_name: Optional[str] = None,
    ) -> Subscription:
        """Listen for INSERT/UPDATE/DELETE (``event="*"``) on ``table``."""
        try:
            channel = self.client.channel(channel_name or f"{table}_channel")
            channel.on_postgres_changes(event, callback=on_event, schema="public", table=table)
            await channel.subscribe()
        except Exception as e:
            raise RemoteCallError(f"subscribe on {table} failed: {e}", table=table, operation="subscribe") from e
        logger.info(f"Subscribed to {event} changes on {table}")
        return Subscription(self.client, channel, table)

    # =========================================================================
    # CUSTOMERS
    # =========================================================================

    async def fetch_customer_by_tax_id(self, cpf: str, table: str = "customers") -> Optional[Dict[str, Any]]:
        rows = await self.select(table, filters={"cpf": cpf}, limit=1)
        return rows[0] if rows else None

    async def upsert_customer(self, customer: Customer, table: str = "customers") -> str:
        """
        Create the customer if its tax id is unknown, else update it in place.

        Returns:
            The customer's row id
        """
        payload = customer_to_row(customer)
        existing = await self.select(table, columns="id", filters={"cpf": customer.cpf}, limit=1)

        if existing:
            customer_id = existing[0]["id"]
            await self.update(table, customer_id, payload)
            return customer_id

        rows = await self.insert(table, payload)
        if not rows or "id" not in rows[0]:
            raise RemoteCallError("Customer insert returned no id", table=table, operation="insert")
        return rows[0]["id"]
