# =============================================================================
# tests/conftest.py
# Pytest Configuration and Fixtures
# =============================================================================

import asyncio
import copy
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

import pytest

from shop_core.config import RemoteStoreConfig, SyncConfig
from shop_core.errors import RemoteCallError, RemoteConstructError
from shop_core.models import Customer, OrderDraft, ProductConfig, TextureMode
from shop_core.offline import LocalStore, OrderSyncController


# =============================================================================
# FAKE REMOTE STORE
# =============================================================================

class FakeSubscription:
    def __init__(self, store, table: str):
        self._store = store
        self.table = table
        self.active = True

    async def cancel(self) -> None:
        self.active = False
        self._store.listeners.pop(self.table, None)


class FakeRemoteStore:
    """
    In-memory stand-in for RemoteStore with the same collaborator contract.

    ``fail_on`` holds operation names ("select", "insert", "update",
    "delete", "subscribe") that should raise RemoteCallError.
    """

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {}
        self.listeners: Dict[str, Callable[[Dict[str, Any]], None]] = {}
        self.fail_on: set = set()
        self.calls: List[tuple] = []
        self._next_id = 1

    def _check(self, table: str, operation: str) -> None:
        self.calls.append((operation, table))
        if operation in self.fail_on:
            raise RemoteCallError(f"{operation} on {table} failed: simulated", table=table, operation=operation)

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return self.tables.setdefault(table, [])

    async def select(self, table, columns="*", filters=None, order_by=None, descending=False, limit=None):
        self._check(table, "select")
        rows = [copy.deepcopy(r) for r in self.rows(table)]
        for col, val in (filters or {}).items():
            rows = [r for r in rows if r.get(col) == val]
        if "customers(*)" in columns:
            customers = {c["id"]: c for c in self.rows("customers")}
            for row in rows:
                row["customers"] = copy.deepcopy(customers.get(row.get("customer_id")))
        if order_by:
            rows.sort(key=lambda r: r.get(order_by) or "", reverse=descending)
        if limit:
            rows = rows[:limit]
        return rows

    async def insert(self, table, record):
        self._check(table, "insert")
        record = copy.deepcopy(record)
        if "id" not in record:
            record["id"] = f"{table}-{self._next_id}"
            self._next_id += 1
        self.rows(table).append(record)
        return [copy.deepcopy(record)]

    async def update(self, table, record_id, patch, id_column="id"):
        self._check(table, "update")
        updated = []
        for row in self.rows(table):
            if row.get(id_column) == record_id:
                row.update(copy.deepcopy(patch))
                updated.append(copy.deepcopy(row))
        return updated

    async def delete(self, table, record_id, id_column="id"):
        self._check(table, "delete")
        self.tables[table] = [r for r in self.rows(table) if r.get(id_column) != record_id]
        return []

    async def subscribe(self, table, on_event, event="*", channel_name=None):
        self._check(table, "subscribe")
        self.listeners[table] = on_event
        return FakeSubscription(self, table)

    async def fetch_customer_by_tax_id(self, cpf, table="customers"):
        rows = await self.select(table, filters={"cpf": cpf}, limit=1)
        return rows[0] if rows else None

    async def upsert_customer(self, customer, table="customers"):
        from shop_core.data.codec import customer_to_row
        payload = customer_to_row(customer)
        existing = await self.select(table, filters={"cpf": customer.cpf}, limit=1)
        if existing:
            await self.update(table, existing[0]["id"], payload)
            return existing[0]["id"]
        rows = await self.insert(table, payload)
        return rows[0]["id"]

    def emit(self, table: str = "orders", event_type: str = "UPDATE") -> None:
        """Deliver a realtime change event to the registered listener."""
        listener = self.listeners.get(table)
        if listener is not None:
            listener({"eventType": event_type, "table": table})


async def _drain(rounds: int = 5) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def drain():
    """Awaitable that lets refresh tasks scheduled by change events run to completion."""
    return _drain


# =============================================================================
# SAMPLE DATA FIXTURES
# =============================================================================

@pytest.fixture
def sample_customer():
    return Customer(
        name="Maria",
        email="maria@example.com",
        phone="11999990000",
        cpf="12345678900",
        address="Rua das Flores, 10 - São Paulo/SP",
        instagram="@maria.pets",
    )


@pytest.fixture
def sample_product():
    return ProductConfig(
        part1_color="Branco",
        part2_color="Azul",
        part3_color="Preto",
        texture_type=TextureMode.CATALOG,
        texture_value="Hexagonal",
        dog_name="Thor",
        observations="Entregar até sexta",
    )


@pytest.fixture
def make_draft(sample_customer, sample_product):
    def _make(name: Optional[str] = None, price: str = "150.00", **kwargs) -> OrderDraft:
        customer = sample_customer
        if name is not None:
            customer = Customer(name=name, cpf=f"cpf-{name}")
        return OrderDraft(
            customer=customer,
            products=(sample_product,),
            price=Decimal(price),
            **kwargs,
        )
    return _make


@pytest.fixture
def legacy_record():
    """Order saved before orders could hold more than one product."""
    return {
        "id": "legacy-1",
        "createdAt": "2024-01-10T12:00:00Z",
        "customer": {"name": "Ana", "email": "", "phone": "", "cpf": "111", "address": ""},
        "product": {
            "part1Color": "Verde",
            "part2Color": "Rosa",
            "part3Color": "Branco",
            "textureType": "personalizada",
            "textureValue": "Patinhas",
            "dogName": "Bidu",
            "observations": "",
        },
        "status": "Pendente",
        "price": 90,
        "isPaid": False,
    }


def _order_row(order_id: str, created_at: str, name: str = "Cliente", status: str = "Pendente") -> Dict[str, Any]:
    return {
        "id": order_id,
        "createdAt": created_at,
        "customer": {"name": name, "email": "", "phone": "", "cpf": "", "address": ""},
        "products": [{
            "id": f"{order_id}-p1",
            "part1Color": "Branco",
            "part2Color": "Preto",
            "part3Color": "Azul",
            "textureType": "cadastrada",
            "textureValue": "Liso",
            "dogName": "",
            "observations": "",
        }],
        "status": status,
        "price": 100.0,
        "isPaid": False,
    }


@pytest.fixture
def order_row():
    """Factory for current-shape order records as stored in Supabase."""
    return _order_row


# =============================================================================
# STORE / CONTROLLER FIXTURES
# =============================================================================

@pytest.fixture
def local_store(tmp_path):
    store = LocalStore(tmp_path / "printshop.db")
    yield store
    store.close()


@pytest.fixture
def remote_config():
    return RemoteStoreConfig(url="https://demo.supabase.co", key="anon-key")


@pytest.fixture
def fake_remote():
    return FakeRemoteStore()


@pytest.fixture
def remote_factory(fake_remote):
    async def factory(config):
        return fake_remote
    return factory


@pytest.fixture
def failing_factory():
    async def factory(config):
        raise RemoteConstructError("boom", url=config.url)
    return factory


@pytest.fixture
def offline_controller(local_store):
    return OrderSyncController(SyncConfig(), local_store)


@pytest.fixture
def online_controller(local_store, remote_config, remote_factory):
    return OrderSyncController(SyncConfig(remote=remote_config), local_store, remote_factory=remote_factory)
