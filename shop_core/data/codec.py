# =============================================================================
# shop_core/data/codec.py
# Record Decoding, Legacy Migration and Snapshot Serialization
# =============================================================================
"""
Boundary between stored records and the in-memory Order model.

Two historical quirks are resolved here, once, at load time:

* Legacy single-product orders (``product: {...}``) become a one-element
  ``products`` list whose product gets a freshly generated id.
* Customers arrive either embedded in the order (legacy ``customer`` JSON)
  or through the ``customers`` relation joined by foreign key (snake_case
  columns). Both decode to a ``CustomerRecord`` variant and then to a single
  ``Customer``; nothing past this module branches on the shape.
"""

from __future__ import annotations
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from shop_core.errors import LocalParseError, OrderValidationError
from shop_core.models.orders import Customer, Order, new_id

logger = logging.getLogger(__name__)


# customers table column -> Customer record key
CUSTOMER_COLUMNS = {
    "partner_name": "partnerName",
    "zip_code": "zipCode",
    "address_full": "address",
}


@dataclass(frozen=True)
class LegacyCustomer:
    """Customer embedded as JSON inside the order row."""
    record: Dict[str, Any]

    def resolve(self) -> Customer:
        return Customer.from_record(self.record)


@dataclass(frozen=True)
class NormalizedCustomer:
    """Customer joined from the customers table through ``customer_id``."""
    customer_id: Optional[str]
    row: Dict[str, Any]

    def resolve(self) -> Customer:
        record = {CUSTOMER_COLUMNS.get(k, k): v for k, v in self.row.items()}
        # camelCase wins if the relation row already carries it
        for key in CUSTOMER_COLUMNS.values():
            if self.row.get(key):
                record[key] = self.row[key]
        record.setdefault("id", self.customer_id)
        return Customer.from_record(record)


CustomerRecord = Union[LegacyCustomer, NormalizedCustomer]


def decode_customer(record: Dict[str, Any]) -> CustomerRecord:
    relation = record.get("customers")
    if isinstance(relation, dict) and relation:
        return NormalizedCustomer(
            customer_id=record.get("customer_id") or relation.get("id"),
            row=relation,
        )
    return LegacyCustomer(record=record.get("customer") or {})


def customer_to_row(customer: Customer) -> Dict[str, Any]:
    """Customer -> customers table payload (snake_case, no id)."""
    return {
        "name": customer.name,
        "email": customer.email,
        "phone": customer.phone,
        "cpf": customer.cpf,
        "instagram": customer.instagram,
        "type": customer.type.value,
        "partner_name": customer.partner_name,
        "address_full": customer.address,
        "zip_code": customer.zip_code,
        "street": customer.street,
        "number": customer.number,
        "complement": customer.complement,
        "neighborhood": customer.neighborhood,
        "city": customer.city,
        "state": customer.state,
    }


# =============================================================================
# LEGACY MIGRATION
# =============================================================================

def is_legacy_record(record: Dict[str, Any]) -> bool:
    return not record.get("products") and isinstance(record.get("product"), dict)


def migrate_record(record: Dict[str, Any]) -> Dict[str, Any]:
    """
    Rewrite a legacy single-product record into the current shape.

    Records already in the current shape are returned unchanged.
    """
    if not is_legacy_record(record):
        return record
    migrated = {k: v for k, v in record.items() if k != "product"}
    migrated["products"] = [{**record["product"], "id": new_id()}]
    logger.debug(f"Migrated legacy order {record.get('id')} to product list")
    return migrated


def decode_order(record: Dict[str, Any]) -> Order:
    record = migrate_record(record)
    customer = decode_customer(record).resolve()
    return Order.from_record(record, customer=customer)


def split_records(records: Iterable[Any]) -> Tuple[List[Order], List[Any]]:
    """
    Decode every record that can be read.

    Returns:
        (orders, the raw records that could not be decoded, untouched)
    """
    orders: List[Order] = []
    unreadable: List[Any] = []
    for record in records:
        try:
            if not isinstance(record, dict):
                raise TypeError(f"expected an object, got {type(record).__name__}")
            orders.append(decode_order(record))
        except (KeyError, TypeError, ValueError, OrderValidationError) as e:
            record_id = record.get("id") if isinstance(record, dict) else record
            logger.warning(f"Unreadable order record {record_id!r}: {e}")
            unreadable.append(record)
    return orders, unreadable


def decode_orders(records: Iterable[Any]) -> List[Order]:
    """Decode every record, dropping (and logging) the ones that cannot be read."""
    return split_records(records)[0]


def order_to_row(order: Order, customer_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Order -> orders table payload.

    With a ``customer_id`` the customer lives in its own table and the row
    only carries the foreign key.
    """
    record = order.to_record()
    if customer_id is not None:
        record.pop("customer", None)
        record.pop("customerId", None)
        record["customer_id"] = customer_id
    return record


# =============================================================================
# SNAPSHOT BLOBS
# =============================================================================

def dumps_orders(orders: Sequence[Order], unreadable: Sequence[Any] = ()) -> str:
    """Serialize the collection; ``unreadable`` raw records are written back as they were."""
    return json.dumps([o.to_record() for o in orders] + list(unreadable), ensure_ascii=False)


def loads_orders(blob: Optional[str], key: str = "orders") -> Tuple[Tuple[Order, ...], int, Tuple[Any, ...]]:
    """
    Parse a stored order collection.

    Records that cannot be decoded are returned as they were stored so the
    next write keeps them on disk.

    Returns:
        (orders, number of legacy records that were migrated, unreadable records)

    Raises:
        LocalParseError: blob is not a JSON list
    """
    if not blob:
        return (), 0, ()
    try:
        parsed = json.loads(blob)
    except (json.JSONDecodeError, TypeError) as e:
        raise LocalParseError(f"Stored orders are not valid JSON: {e}", key=key) from e
    if not isinstance(parsed, list):
        raise LocalParseError("Stored orders are not a list", key=key)

    migrated = sum(1 for r in parsed if isinstance(r, dict) and is_legacy_record(r))
    orders, unreadable = split_records(parsed)
    return tuple(orders), migrated, tuple(unreadable)
