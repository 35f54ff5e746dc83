# =============================================================================
# tests/integration/test_order_lifecycle.py
# Integration Tests: order lifecycle across offline and online operation
# =============================================================================

import json

import pytest

from shop_core.analytics import compute_order_stats
from shop_core.config import load_sync_config, save_remote_config
from shop_core.models import OrderStatus
from shop_core.offline import OrderSyncController
from shop_core.services.catalog_service import CatalogService


@pytest.fixture
def no_ambient_credentials(monkeypatch):
    monkeypatch.setattr("shop_core.config.settings._secrets_config", lambda: None)
    monkeypatch.delenv("SUPABASE_URL", raising=False)
    monkeypatch.delenv("SUPABASE_KEY", raising=False)


class TestOfflineLifecycle:
    """Intake to delivery without a backend"""

    @pytest.mark.asyncio
    async def test_intake_to_delivery(self, local_store, make_draft, no_ambient_credentials):
        controller = OrderSyncController(load_sync_config(local_store), local_store)
        assert await controller.start() is False

        order = (await controller.create_order(make_draft())).data
        for status in (OrderStatus.PRINTING, OrderStatus.FINISHING, OrderStatus.DONE):
            assert await controller.update_status(order.id, status)
        for part in ("part1", "part2", "part3"):
            assert await controller.toggle_part_printed(order.id, 0, part)
        assert await controller.update_paid(order.id, True)
        assert await controller.update_status(order.id, OrderStatus.DELIVERED)

        final = controller.get_order(order.id)
        assert final.status == OrderStatus.DELIVERED
        assert final.is_paid
        assert final.products[0].print_status.all_printed

        stats = compute_order_stats(controller.snapshot)
        assert stats.open_orders == 0
        assert stats.paid_total == 150.0

        await controller.teardown()

        restarted = OrderSyncController(load_sync_config(local_store), local_store)
        await restarted.start()
        assert restarted.get_order(order.id) == final


class TestGoingOnline:
    """Saving credentials and reinitializing switches to Supabase"""

    @pytest.mark.asyncio
    async def test_reinitialize_with_saved_credentials(
        self, local_store, remote_config, remote_factory, fake_remote, make_draft, order_row, drain,
        no_ambient_credentials,
    ):
        controller = OrderSyncController(load_sync_config(local_store), local_store, remote_factory=remote_factory)
        await controller.start()
        offline_order = (await controller.create_order(make_draft(name="Ana"))).data

        fake_remote.rows("orders").append(order_row("remote-1", "2024-06-01T12:00:00Z", name="Bia"))
        save_remote_config(local_store, remote_config)

        assert await controller.reinitialize(load_sync_config(local_store)) is True

        # Offline orders are not uploaded
        assert [o.id for o in controller.snapshot] == ["remote-1"]
        stored = json.loads(local_store.get(controller.config.storage_keys.orders))
        assert [r["id"] for r in stored] == [offline_order.id]

        created = (await controller.create_order(make_draft(name="Caio"))).data
        fake_remote.emit(event_type="INSERT")
        await drain()

        assert {o.id for o in controller.snapshot} == {"remote-1", created.id}

        catalog = CatalogService(controller.config, local_store, remote=controller.remote)
        catalog.load_local()
        assert (await catalog.add_texture("Escamas")).success
        assert "Escamas" in catalog.texture_names

        await controller.teardown()
        assert controller.is_offline
