# =============================================================================
# shop_core/models/orders.py
# Order, Customer and Product Configuration Models
# =============================================================================
"""
Domain models for print orders.

Records are persisted (locally and in Supabase) with the camelCase keys the
storefront has always used, so ``to_record`` / ``from_record`` translate
between those keys and the snake_case attributes used in Python.

Orders are frozen dataclasses; mutations go through ``dataclasses.replace``
and the sync controller swaps whole records in its snapshot.
"""

from __future__ import annotations
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from shop_core.errors import OrderValidationError


CENTS = Decimal("0.01")


class OrderStatus(str, Enum):
    """Production lifecycle, in shop-floor order."""
    PENDING = "Pendente"
    PRINTING = "Em Impressão"
    FINISHING = "Acabamento"
    DONE = "Concluído"
    DELIVERED = "Entregue"

    @classmethod
    def initial(cls) -> OrderStatus:
        return cls.PENDING

    @property
    def is_open(self) -> bool:
        return self in (OrderStatus.PENDING, OrderStatus.PRINTING, OrderStatus.FINISHING)


class CustomerType(str, Enum):
    FINAL = "final"
    PARTNER = "partner"


class TextureMode(str, Enum):
    """A product uses either a stock texture from the catalog or a custom one."""
    CATALOG = "cadastrada"
    CUSTOM = "personalizada"


def new_id() -> str:
    """Client-side identifier for orders and product lines."""
    return str(uuid.uuid4())


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def to_price(value: Any) -> Decimal:
    """Parse a currency amount into a two-decimal Decimal."""
    if value is None or value == "":
        return Decimal("0.00")
    try:
        return Decimal(str(value)).quantize(CENTS)
    except (InvalidOperation, ValueError) as e:
        raise OrderValidationError(f"Invalid price: {value!r}", field="price") from e


@dataclass(frozen=True)
class Customer:
    """Customer data as captured by the intake form."""
    name: str
    email: str = ""
    phone: str = ""
    cpf: str = ""
    address: str = ""
    instagram: Optional[str] = None
    type: CustomerType = CustomerType.FINAL
    partner_name: Optional[str] = None
    zip_code: Optional[str] = None
    street: Optional[str] = None
    number: Optional[str] = None
    complement: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    id: Optional[str] = None

    # attribute name -> persisted key
    _KEYS = {
        "partner_name": "partnerName",
        "zip_code": "zipCode",
    }

    @property
    def tax_id(self) -> str:
        return self.cpf

    def to_record(self) -> Dict[str, Any]:
        record: Dict[str, Any] = {}
        for name in self.__dataclass_fields__:
            value = getattr(self, name)
            if name == "type":
                value = value.value
            if value is None and name in ("id", "instagram"):
                continue
            record[self._KEYS.get(name, name)] = value
        return record

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> Customer:
        kwargs: Dict[str, Any] = {}
        for name in cls.__dataclass_fields__:
            key = cls._KEYS.get(name, name)
            if key in record:
                kwargs[name] = record[key]
        kwargs["name"] = record.get("name") or ""
        kwargs["type"] = CustomerType(record.get("type") or CustomerType.FINAL.value)
        for name in ("email", "phone", "cpf", "address"):
            kwargs[name] = kwargs.get(name) or ""
        return cls(**kwargs)


@dataclass(frozen=True)
class PrintStatus:
    """Which of the three physical parts have come off the printer."""
    part1: bool = False
    part2: bool = False
    part3: bool = False

    @property
    def all_printed(self) -> bool:
        return self.part1 and self.part2 and self.part3

    def toggled(self, part: str) -> PrintStatus:
        if part not in ("part1", "part2", "part3"):
            raise OrderValidationError(f"Unknown part: {part}", field="printStatus")
        return replace(self, **{part: not getattr(self, part)})

    def to_record(self) -> Dict[str, bool]:
        return {"part1": self.part1, "part2": self.part2, "part3": self.part3}


@dataclass(frozen=True)
class ProductConfig:
    """One printed item: three part colours, a texture and personalization."""
    part1_color: str
    part2_color: str
    part3_color: str
    texture_type: TextureMode = TextureMode.CATALOG
    texture_value: str = ""
    dog_name: str = ""
    observations: str = ""
    print_status: Optional[PrintStatus] = None
    id: str = field(default_factory=new_id)

    @property
    def personalization(self) -> str:
        return self.dog_name

    def validate(self) -> None:
        if not isinstance(self.texture_type, TextureMode):
            raise OrderValidationError("Exactly one texture mode must be set", field="textureType")
        if not self.texture_value.strip():
            raise OrderValidationError("Texture must not be empty", field="textureValue")

    def to_record(self) -> Dict[str, Any]:
        record = {
            "id": self.id,
            "part1Color": self.part1_color,
            "part2Color": self.part2_color,
            "part3Color": self.part3_color,
            "textureType": self.texture_type.value,
            "textureValue": self.texture_value,
            "dogName": self.dog_name,
            "observations": self.observations,
        }
        if self.print_status is not None:
            record["printStatus"] = self.print_status.to_record()
        return record

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> ProductConfig:
        print_status = record.get("printStatus")
        return cls(
            id=record.get("id") or new_id(),
            part1_color=record.get("part1Color") or "",
            part2_color=record.get("part2Color") or "",
            part3_color=record.get("part3Color") or "",
            texture_type=TextureMode(record.get("textureType") or TextureMode.CATALOG.value),
            texture_value=record.get("textureValue") or "",
            dog_name=record.get("dogName") or "",
            observations=record.get("observations") or "",
            print_status=PrintStatus(**print_status) if print_status else None,
        )


@dataclass(frozen=True)
class OrderDraft:
    """What the intake form hands over; id, timestamp and status are assigned on create."""
    customer: Customer
    products: Tuple[ProductConfig, ...]
    price: Decimal
    shipping_cost: Optional[Decimal] = None
    is_paid: bool = False

    def validate(self) -> None:
        if not self.customer.name.strip():
            raise OrderValidationError("Customer name is required", field="customer.name")
        if not self.products:
            raise OrderValidationError("An order needs at least one product", field="products")
        for product in self.products:
            product.validate()
        if to_price(self.price) < 0:
            raise OrderValidationError("Price must not be negative", field="price")

    def to_order(self, order_id: Optional[str] = None, created_at: Optional[str] = None) -> Order:
        self.validate()
        return Order(
            id=order_id or new_id(),
            created_at=created_at or utc_now_iso(),
            customer=self.customer,
            products=tuple(self.products),
            status=OrderStatus.initial(),
            price=to_price(self.price),
            shipping_cost=to_price(self.shipping_cost) if self.shipping_cost is not None else None,
            is_paid=self.is_paid,
        )


@dataclass(frozen=True)
class Order:
    id: str
    created_at: str
    customer: Customer
    products: Tuple[ProductConfig, ...]
    status: OrderStatus = OrderStatus.PENDING
    price: Decimal = Decimal("0.00")
    is_paid: bool = False
    shipping_cost: Optional[Decimal] = None
    customer_id: Optional[str] = None

    def with_status(self, status: OrderStatus) -> Order:
        return replace(self, status=OrderStatus(status))

    def with_paid(self, is_paid: bool) -> Order:
        return replace(self, is_paid=bool(is_paid))

    def with_part_toggled(self, product_index: int, part: str) -> Order:
        products = list(self.products)
        try:
            product = products[product_index]
        except IndexError as e:
            raise OrderValidationError(
                f"Order {self.id} has no product #{product_index}", field="products"
            ) from e
        current = product.print_status or PrintStatus()
        products[product_index] = replace(product, print_status=current.toggled(part))
        return replace(self, products=tuple(products))

    def to_record(self) -> Dict[str, Any]:
        """Full persisted shape, customer embedded."""
        record: Dict[str, Any] = {
            "id": self.id,
            "createdAt": self.created_at,
            "customer": self.customer.to_record(),
            "products": [p.to_record() for p in self.products],
            "status": self.status.value,
            "price": float(self.price),
            "isPaid": self.is_paid,
        }
        if self.shipping_cost is not None:
            record["shippingCost"] = float(self.shipping_cost)
        if self.customer_id is not None:
            record["customerId"] = self.customer_id
        return record

    @classmethod
    def from_record(cls, record: Dict[str, Any], customer: Optional[Customer] = None) -> Order:
        """
        Build an Order from a record already in the current shape.

        Legacy shapes are handled in ``shop_core.data.codec`` before this is
        called; ``customer`` lets the codec pass in the resolved customer.
        """
        products = record.get("products")
        if not products:
            raise OrderValidationError(f"Order {record.get('id')} has no products", field="products")
        shipping = record.get("shippingCost")
        return cls(
            id=str(record["id"]),
            created_at=record.get("createdAt") or "",
            customer=customer or Customer.from_record(record.get("customer") or {}),
            products=tuple(ProductConfig.from_record(p) for p in products),
            status=OrderStatus(record.get("status") or OrderStatus.initial().value),
            price=to_price(record.get("price")),
            is_paid=bool(record.get("isPaid", False)),
            shipping_cost=to_price(shipping) if shipping is not None else None,
            customer_id=record.get("customerId") or record.get("customer_id"),
        )
