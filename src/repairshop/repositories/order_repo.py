from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from psycopg import Connection
from psycopg.types.json import Jsonb

from ..domain import Accessory, Device, RepairOrder
from ..errors import StaleWriteError

_COLUMNS = """
    id, client_id, customer_name, customer_phone, customer_email, customer_dni,
    customer_address, devices, status, technician_id, technician_name,
    created_at, updated_at, completed_at, delivered_at, cancelled_at, total_cost
"""


def _device_to_json(d: Device) -> dict:
    return {
        "id": d.id,
        "brand": d.brand,
        "model": d.model,
        "serial_number": d.serial_number,
        "type": d.type,
        "review_cost": str(d.review_cost),
        "reported_issue": d.reported_issue,
        "diagnosis": d.diagnosis,
        "accessories": [{"name": a.name, "included": a.included} for a in d.accessories],
    }


def _device_from_json(obj: dict) -> Device:
    return Device(
        id=obj["id"],
        brand=obj["brand"],
        model=obj["model"],
        serial_number=obj.get("serial_number", ""),
        type=obj.get("type", "OTHER"),
        review_cost=Decimal(obj.get("review_cost", "0")),
        reported_issue=obj["reported_issue"],
        diagnosis=obj.get("diagnosis"),
        accessories=tuple(Accessory(a["name"], bool(a.get("included", True))) for a in obj.get("accessories", [])),
    )


def _row_to_order(row: dict) -> RepairOrder:
    data = dict(row)
    data["devices"] = tuple(_device_from_json(d) for d in data["devices"])
    return RepairOrder(**data)


class OrderRepository:
    def create(self, conn: Connection, order: RepairOrder) -> str:
        cur = conn.execute(
            """
            INSERT INTO repair_order(id, client_id, customer_name, customer_phone, customer_email,
                                     customer_dni, customer_address, devices, status,
                                     technician_id, technician_name, created_at, updated_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id;
            """,
            (
                order.id,
                order.client_id,
                order.customer_name,
                order.customer_phone,
                order.customer_email,
                order.customer_dni,
                order.customer_address,
                Jsonb([_device_to_json(d) for d in order.devices]),
                order.status,
                order.technician_id,
                order.technician_name,
                order.created_at,
                order.updated_at,
            ),
        )
        return str(cur.fetchone()["id"])

    def get(self, conn: Connection, order_id: str) -> RepairOrder | None:
        cur = conn.execute(f"SELECT {_COLUMNS} FROM repair_order WHERE id = %s;", (order_id,))
        row = cur.fetchone()
        return _row_to_order(row) if row else None

    def list(self, conn: Connection, *, technician_id: str | None = None, limit: int = 50) -> list[RepairOrder]:
        if technician_id is None:
            cur = conn.execute(
                f"SELECT {_COLUMNS} FROM repair_order ORDER BY created_at DESC LIMIT %s;",
                (limit,),
            )
        else:
            cur = conn.execute(
                f"""
                SELECT {_COLUMNS} FROM repair_order
                WHERE technician_id = %s
                ORDER BY created_at DESC LIMIT %s;
                """,
                (technician_id, limit),
            )
        return [_row_to_order(row) for row in cur.fetchall()]

    def save(self, conn: Connection, order: RepairOrder, *, read_at: datetime) -> None:
        """Write back a changed snapshot; ``read_at`` is the updated_at it was loaded with."""
        cur = conn.execute(
            """
            UPDATE repair_order
            SET status = %s, devices = %s, updated_at = %s, completed_at = %s,
                delivered_at = %s, cancelled_at = %s, total_cost = %s
            WHERE id = %s AND updated_at = %s;
            """,
            (
                order.status,
                Jsonb([_device_to_json(d) for d in order.devices]),
                order.updated_at,
                order.completed_at,
                order.delivered_at,
                order.cancelled_at,
                order.total_cost,
                order.id,
                read_at,
            ),
        )
        if cur.rowcount != 1:
            raise StaleWriteError(f"Order {order.id} was changed by someone else.")
