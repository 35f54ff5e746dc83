# =============================================================================
# shop_core/offline/sync_controller.py
# Order Sync Controller - online/offline routing and snapshot ownership
# =============================================================================
"""
OrderSyncController - the single owner of the in-memory order snapshot.

At start-up it decides, once, whether orders live in Supabase or on this
device:

    SyncConfig.remote is None / invalid  ->  offline
    client construction raises           ->  offline
    otherwise                            ->  online

Online:
    - subscribe to INSERT/UPDATE/DELETE on the orders table
    - every change event triggers a full, sorted refetch that replaces the
      snapshot (last started refetch wins)
    - mutations go to Supabase only; the snapshot changes when the change
      feed reports them

Offline:
    - the order collection is read once from the local store, legacy
      single-product records are migrated
    - records that cannot be decoded are not shown but are written back
      unchanged, so a write never drops them
    - every mutation rewrites the whole collection to the local store before
      the new snapshot is published

Usage:
------
controller = OrderSyncController(load_sync_config(store), store)
await controller.start()
controller.add_snapshot_listener(render)
result = await controller.create_order(draft)
if not result:
    show_alert(result.error)
await controller.teardown()
"""

from __future__ import annotations
import asyncio
import sqlite3
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set, Tuple

from shop_core.config import RemoteStoreConfig, SyncConfig
from shop_core.data.codec import decode_orders, dumps_orders, loads_orders, order_to_row
from shop_core.data.supabase_client import RemoteStore, Subscription, create_remote_store
from shop_core.errors import (
    LocalParseError,
    OrderNotFoundError,
    OrderValidationError,
    RemoteCallError,
    handle_error,
)
from shop_core.models.orders import Order, OrderDraft, OrderStatus
from shop_core.offline.local_store import LocalStore
from shop_core.services.base_service import BaseService, ServiceResult


RemoteFactory = Callable[[RemoteStoreConfig], Awaitable[RemoteStore]]
SnapshotCallback = Callable[[Tuple[Order, ...]], None]
StatusCallback = Callable[[bool], None]


class OrderSyncController(BaseService):
    """
    Routes order reads and writes to Supabase or the local store.

    The snapshot is a tuple of frozen ``Order`` records; listeners receive the
    tuple itself, which is safe to keep since nothing in it can change.
    """

    def __init__(
        self,
        config: SyncConfig,
        local_store: LocalStore,
        remote_factory: RemoteFactory = create_remote_store,
    ):
        super().__init__()
        self._config = config
        self._local = local_store
        self._remote_factory = remote_factory

        self._remote: Optional[RemoteStore] = None
        self._subscription: Optional[Subscription] = None
        self._orders: Tuple[Order, ...] = ()
        # stored records that could not be decoded; written back untouched
        self._unreadable: Tuple[Any, ...] = ()
        self._online = False
        self._started = False

        # refetch ordering: a result is applied only if no later-started
        # refetch has already been applied and no teardown happened meanwhile
        self._epoch = 0
        self._refresh_started = 0
        self._refresh_applied = 0
        self._pending_refreshes: Set[asyncio.Task] = set()

        self._snapshot_callbacks: List[SnapshotCallback] = []
        self._status_callbacks: List[StatusCallback] = []

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def config(self) -> SyncConfig:
        return self._config

    @property
    def is_online(self) -> bool:
        return self._online

    @property
    def is_offline(self) -> bool:
        return not self._online

    @property
    def is_started(self) -> bool:
        return self._started

    @property
    def snapshot(self) -> Tuple[Order, ...]:
        return self._orders

    @property
    def remote(self) -> Optional[RemoteStore]:
        """Remote store handle while online, for collaborators such as the catalog."""
        return self._remote

    def get_order(self, order_id: str) -> Optional[Order]:
        for order in self._orders:
            if order.id == order_id:
                return order
        return None

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> bool:
        """
        Select the operating mode and load the initial snapshot.

        Returns:
            True when running online
        """
        if self._started:
            return self._online

        online = await self._select_mode()
        self._started = True
        self._set_online(online)

        if online:
            await self._start_online()
        else:
            self._start_offline()

        self.logger.info(
            f"Order sync started ({'online' if online else 'offline'}, "
            f"{self._config.env_mode.value}) with {len(self._orders)} orders"
        )
        return online

    async def _select_mode(self) -> bool:
        if self._config.remote is None:
            self.logger.info("No remote credentials configured, running offline")
            return False

        try:
            self._remote = await self._remote_factory(self._config.remote)
        except Exception as e:
            self._remote = None
            self.logger.error(f"Remote client construction failed, running offline: {e}")
            return False
        return True

    async def _start_online(self) -> None:
        try:
            self._subscription = await self._remote.subscribe(
                self._config.orders_table,
                self._on_change,
                event="*",
                channel_name=self._config.channel_name,
            )
        except RemoteCallError as e:
            self.logger.error(f"Realtime subscription failed, snapshot will not auto-refresh: {e}")

        await self.refresh()

    def _start_offline(self) -> None:
        key = self._config.storage_keys.orders
        try:
            orders, migrated, unreadable = loads_orders(self._local.get(key), key=key)
        except LocalParseError as e:
            self.logger.warning(f"Stored orders unreadable, starting empty: {e}")
            orders, migrated, unreadable = (), 0, ()

        self._unreadable = unreadable
        if unreadable:
            self.logger.error(
                f"{len(unreadable)} stored orders could not be read; they are kept on disk but not shown"
            )
        if migrated:
            self.logger.info(f"Migrated {migrated} legacy orders to the product list shape")
            self._local.set(key, dumps_orders(orders, self._unreadable))

        self._publish(orders)

    async def teardown(self) -> None:
        """Unregister the change listener and drop the remote handle."""
        # refetches still in flight, awaited directly or not, must not publish
        self._epoch += 1
        if self._subscription is not None:
            try:
                await self._subscription.cancel()
            except RemoteCallError as e:
                self.logger.error(f"Failed to unsubscribe cleanly: {e}")
            self._subscription = None

        pending = list(self._pending_refreshes)
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._pending_refreshes.clear()

        self._remote = None
        self._started = False
        self._set_online(False)
        self.logger.info("Order sync stopped")

    async def reinitialize(self, config: SyncConfig) -> bool:
        """Apply a new configuration: full teardown, then a fresh start."""
        await self.teardown()
        self._config = config
        self._unreadable = ()
        self._publish(())
        return await self.start()

    # =========================================================================
    # ONLINE RECONCILIATION
    # =========================================================================

    def _on_change(self, payload: Dict[str, Any]) -> None:
        """Realtime callback: any change to any order means a full refetch."""
        self.logger.debug(f"Change event on {self._config.orders_table}: {payload.get('eventType', payload.get('type', '?'))}")
        task = asyncio.get_running_loop().create_task(self.refresh())
        self._pending_refreshes.add(task)
        task.add_done_callback(self._pending_refreshes.discard)

    async def refresh(self) -> ServiceResult:
        """
        Re-read the whole order collection, newest first, and replace the snapshot.

        A refetch that finishes after a later-started one has already been
        applied is discarded, as is one that outlived a teardown.
        """
        if not self._online or self._remote is None:
            return ServiceResult.fail("Refresh is only available online", error_code="OFFLINE")

        self._refresh_started += 1
        generation = self._refresh_started
        epoch = self._epoch
        remote = self._remote

        columns = "*, customers(*)" if self._config.normalize_customers else "*"
        try:
            rows = await remote.select(
                self._config.orders_table,
                columns=columns,
                order_by=self._config.order_by,
                descending=True,
            )
        except RemoteCallError as e:
            self.logger.error(f"Error fetching orders: {e}")
            return ServiceResult.from_exception(e)

        if epoch != self._epoch or not self._online or self._remote is not remote:
            self.logger.debug(f"Discarding refetch #{generation} started before teardown")
            return ServiceResult.fail("Order sync was stopped during refresh", error_code="OFFLINE")

        if generation < self._refresh_applied:
            self.logger.debug(f"Discarding stale refetch #{generation}")
            return ServiceResult.ok(self._orders, metadata={"stale": True})

        self._refresh_applied = generation
        orders = tuple(decode_orders(rows))
        self._publish(orders)
        self.logger.debug(f"Refetch #{generation} loaded {len(orders)} orders")
        return ServiceResult.ok(orders)

    # =========================================================================
    # MUTATIONS
    # =========================================================================

    async def create_order(self, draft: OrderDraft) -> ServiceResult:
        """
        Create an order from intake data.

        Online, a failed insert leaves the snapshot untouched and is reported
        to the caller (and to the user when ``alert_user`` is set).
        """
        try:
            order = draft.to_order()
        except OrderValidationError as e:
            self.logger.warning(f"Rejected order draft: {e}")
            return ServiceResult.from_exception(e)

        if self._online:
            try:
                await self._remote.insert(self._config.orders_table, await self._order_row(order))
            except RemoteCallError as e:
                self._report_save_failure(e)
                return ServiceResult.from_exception(e)
            self.logger.info(f"Order {order.id} sent to Supabase")
            return ServiceResult.ok(order)

        result = self._write_offline((order,) + self._orders)
        if result:
            self.logger.info(f"Order {order.id} saved locally")
            return ServiceResult.ok(order)
        return result

    async def update_order(self, order: Order) -> ServiceResult:
        """Replace every editable field of an existing order."""
        if self._online:
            row = await self._safe_order_row(order)
            if not row:
                return row
            patch = {k: v for k, v in row.data.items() if k != "id"}
            try:
                await self._remote.update(self._config.orders_table, order.id, patch)
            except RemoteCallError as e:
                self._report_save_failure(e)
                return ServiceResult.from_exception(e)
            return ServiceResult.ok(order)

        return self._mutate_offline(order.id, lambda _: order)

    async def update_status(self, order_id: str, status: OrderStatus) -> ServiceResult:
        try:
            status = OrderStatus(status)
        except ValueError:
            return ServiceResult.from_exception(
                OrderValidationError(f"Unknown status: {status!r}", field="status")
            )

        if self._online:
            return await self._patch_remote(order_id, {"status": status.value}, "update status")
        return self._mutate_offline(order_id, lambda o: o.with_status(status))

    async def update_paid(self, order_id: str, is_paid: bool) -> ServiceResult:
        if not isinstance(is_paid, bool):
            return ServiceResult.from_exception(
                OrderValidationError(f"Paid flag must be a boolean: {is_paid!r}", field="isPaid")
            )

        if self._online:
            return await self._patch_remote(order_id, {"isPaid": is_paid}, "update paid flag")
        return self._mutate_offline(order_id, lambda o: o.with_paid(is_paid))

    async def delete_order(self, order_id: str) -> ServiceResult:
        if self._online:
            try:
                await self._remote.delete(self._config.orders_table, order_id)
            except RemoteCallError as e:
                self.logger.error(f"Error deleting order {order_id}: {e}")
                return ServiceResult.from_exception(e)
            return ServiceResult.ok(order_id)

        remaining = tuple(o for o in self._orders if o.id != order_id)
        if len(remaining) == len(self._orders):
            return ServiceResult.from_exception(OrderNotFoundError(order_id))
        result = self._write_offline(remaining)
        return ServiceResult.ok(order_id) if result else result

    async def toggle_part_printed(self, order_id: str, product_index: int, part: str) -> ServiceResult:
        """Flip the printed flag of one part of one product line."""
        order = self.get_order(order_id)
        if order is None:
            return ServiceResult.from_exception(OrderNotFoundError(order_id))
        try:
            updated = order.with_part_toggled(product_index, part)
        except OrderValidationError as e:
            return ServiceResult.from_exception(e)
        return await self.update_order(updated)

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _order_row(self, order: Order) -> Dict[str, Any]:
        if not self._config.normalize_customers:
            return order.to_record()
        customer_id = await self._remote.upsert_customer(order.customer, self._config.customers_table)
        return order_to_row(order, customer_id=customer_id)

    async def _safe_order_row(self, order: Order) -> ServiceResult:
        try:
            return ServiceResult.ok(await self._order_row(order))
        except RemoteCallError as e:
            self._report_save_failure(e)
            return ServiceResult.from_exception(e)

    async def _patch_remote(self, order_id: str, patch: Dict[str, Any], operation: str) -> ServiceResult:
        # Not alerted to the user; the result carries the failure
        try:
            await self._remote.update(self._config.orders_table, order_id, patch)
        except RemoteCallError as e:
            self.logger.error(f"Error during {operation} for order {order_id}: {e}")
            return ServiceResult.from_exception(e)
        return ServiceResult.ok(order_id)

    def _mutate_offline(self, order_id: str, change: Callable[[Order], Order]) -> ServiceResult:
        orders = list(self._orders)
        for index, order in enumerate(orders):
            if order.id == order_id:
                orders[index] = change(order)
                result = self._write_offline(tuple(orders))
                return ServiceResult.ok(orders[index]) if result else result
        return ServiceResult.from_exception(OrderNotFoundError(order_id))

    def _write_offline(self, orders: Tuple[Order, ...]) -> ServiceResult:
        """Persist the whole collection, then publish it."""
        try:
            self._local.set(self._config.storage_keys.orders, dumps_orders(orders, self._unreadable))
        except sqlite3.Error as e:
            self.logger.error(f"Failed to write orders to local store: {e}")
            return ServiceResult.fail(str(e), error_code="LOCAL_002")
        self._publish(orders)
        return ServiceResult.ok(orders)

    def _report_save_failure(self, error: RemoteCallError) -> None:
        handle_error(
            error,
            show_user_message=self._config.alert_user,
            user_message=f"Failed to save order to Supabase: {error.message}",
        )

    # =========================================================================
    # LISTENERS
    # =========================================================================

    def _publish(self, orders: Tuple[Order, ...]) -> None:
        self._orders = tuple(orders)
        for callback in list(self._snapshot_callbacks):
            try:
                callback(self._orders)
            except Exception as e:
                self.logger.error(f"Error in snapshot callback: {e}")

    def _set_online(self, online: bool) -> None:
        if online == self._online:
            return
        self._online = online
        for callback in list(self._status_callbacks):
            try:
                callback(online)
            except Exception as e:
                self.logger.error(f"Error in status callback: {e}")

    def add_snapshot_listener(self, callback: SnapshotCallback) -> None:
        """Register a callback receiving every published snapshot."""
        if callback not in self._snapshot_callbacks:
            self._snapshot_callbacks.append(callback)

    def remove_snapshot_listener(self, callback: SnapshotCallback) -> None:
        if callback in self._snapshot_callbacks:
            self._snapshot_callbacks.remove(callback)

    def add_status_listener(self, callback: StatusCallback) -> None:
        """Register a callback for online/offline changes (drives the banner)."""
        if callback not in self._status_callbacks:
            self._status_callbacks.append(callback)

    def remove_status_listener(self, callback: StatusCallback) -> None:
        if callback in self._status_callbacks:
            self._status_callbacks.remove(callback)
