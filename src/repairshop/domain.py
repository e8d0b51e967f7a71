from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional, Union

RepairStatus = Literal["PENDING", "IN_PROGRESS", "COMPLETED", "DELIVERED", "CANCELLED"]
REPAIR_STATUSES: tuple[RepairStatus, ...] = (
    "PENDING",
    "IN_PROGRESS",
    "COMPLETED",
    "DELIVERED",
    "CANCELLED",
)
TERMINAL_STATUSES: frozenset[RepairStatus] = frozenset({"DELIVERED", "CANCELLED"})

UserRole = Literal["ADMIN", "TECHNICIAN"]
USER_ROLES: tuple[UserRole, ...] = ("ADMIN", "TECHNICIAN")

DeviceType = Literal[
    "REFRIGERATOR",
    "WASHING_MACHINE",
    "DRYER",
    "STOVE",
    "MICROWAVE",
    "TV",
    "LAPTOP",
    "DESKTOP",
    "TABLET",
    "SMARTPHONE",
    "OTHER",
]
DEVICE_TYPES: tuple[DeviceType, ...] = (
    "REFRIGERATOR",
    "WASHING_MACHINE",
    "DRYER",
    "STOVE",
    "MICROWAVE",
    "TV",
    "LAPTOP",
    "DESKTOP",
    "TABLET",
    "SMARTPHONE",
    "OTHER",
)

PaymentMethod = Literal["CASH", "YAPE", "CARD"]
PAYMENT_METHODS: tuple[PaymentMethod, ...] = ("CASH", "YAPE", "CARD")

StockStatus = Literal["SOLD_OUT", "LOW", "IN_STOCK"]


@dataclass(frozen=True)
class User:
    id: str
    role: UserRole
    name: Optional[str] = None
    email: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "ADMIN"


@dataclass(frozen=True)
class Accessory:
    name: str
    included: bool = True


@dataclass(frozen=True)
class Device:
    id: str
    brand: str
    model: str
    serial_number: str
    type: DeviceType
    review_cost: Decimal
    reported_issue: str
    accessories: tuple[Accessory, ...] = ()
    diagnosis: Optional[str] = None


@dataclass(frozen=True)
class RepairOrder:
    id: str
    customer_name: str
    customer_phone: str
    devices: tuple[Device, ...]
    status: RepairStatus
    created_at: datetime
    updated_at: datetime
    customer_email: Optional[str] = None
    customer_dni: Optional[str] = None
    customer_address: Optional[str] = None
    client_id: Optional[str] = None
    technician_id: Optional[str] = None
    technician_name: Optional[str] = None
    completed_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    total_cost: Optional[Decimal] = None

    def __post_init__(self) -> None:
        if not self.devices:
            raise ValueError("A repair order must contain at least one device.")

    def device(self, device_id: str) -> Optional[Device]:
        for d in self.devices:
            if d.id == device_id:
                return d
        return None


@dataclass(frozen=True)
class Budget:
    id: str
    repair_order_id: str
    labor_cost: Decimal
    parts_cost: Decimal
    created_at: datetime
    updated_at: datetime
    additional_costs: Decimal = Decimal("0")
    additional_costs_description: Optional[str] = None
    approved: bool = False

    @property
    def total_cost(self) -> Decimal:
        return self.labor_cost + self.parts_cost + self.additional_costs


@dataclass(frozen=True)
class Product:
    id: str
    name: str
    description: str
    sku: str
    price: Decimal
    stock: int
    category: str
    created_at: datetime
    updated_at: datetime
    brand: Optional[str] = None
    model: Optional[str] = None
    image_url: Optional[str] = None


@dataclass(frozen=True)
class SaleItem:
    id: str
    product_id: str
    product_name: str
    quantity: int
    unit_price: Decimal

    @property
    def total_price(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class CashPayment:
    amount: Decimal
    received_amount: Decimal
    change: Decimal
    method: PaymentMethod = field(default="CASH", init=False)


@dataclass(frozen=True)
class YapePayment:
    amount: Decimal
    phone_number: str
    reference: str
    method: PaymentMethod = field(default="YAPE", init=False)


@dataclass(frozen=True)
class CardPayment:
    amount: Decimal
    reference: str
    method: PaymentMethod = field(default="CARD", init=False)


PaymentDetails = Union[CashPayment, YapePayment, CardPayment]


@dataclass(frozen=True)
class Customer:
    """Optional buyer contact printed on the receipt."""

    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


@dataclass(frozen=True)
class Sale:
    items: tuple[SaleItem, ...]
    subtotal: Decimal
    tax: Decimal
    total: Decimal
    payment: PaymentDetails
    created_at: datetime
    customer: Customer = Customer()
    id: Optional[int] = None
