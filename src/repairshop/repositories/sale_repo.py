from __future__ import annotations

from psycopg import Connection

from ..domain import CashPayment, Sale, YapePayment


class SaleRepository:
    def create(self, conn: Connection, sale: Sale) -> int:
        p = sale.payment
        cur = conn.execute(
            """
            INSERT INTO sale(subtotal, tax, total, payment_method, received_amount, change,
                             payment_phone, payment_reference, customer_name, customer_phone,
                             customer_email, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id;
            """,
            (
                sale.subtotal,
                sale.tax,
                sale.total,
                p.method,
                p.received_amount if isinstance(p, CashPayment) else None,
                p.change if isinstance(p, CashPayment) else None,
                p.phone_number if isinstance(p, YapePayment) else None,
                None if isinstance(p, CashPayment) else p.reference,
                sale.customer.name,
                sale.customer.phone,
                sale.customer.email,
                sale.created_at,
            ),
        )
        sale_id = int(cur.fetchone()["id"])

        for item in sale.items:
            conn.execute(
                """
                INSERT INTO sale_item(sale_id, product_id, product_name, quantity, unit_price)
                VALUES (%s, %s, %s, %s, %s);
                """,
                (sale_id, item.product_id, item.product_name, item.quantity, item.unit_price),
            )
        return sale_id

    def list_recent(self, conn: Connection, limit: int = 20) -> list[dict]:
        cur = conn.execute(
            """
            SELECT s.id, s.total, s.payment_method, s.customer_name, s.created_at,
                   COALESCE(SUM(si.quantity), 0) AS units
            FROM sale s
            LEFT JOIN sale_item si ON si.sale_id = s.id
            GROUP BY s.id
            ORDER BY s.created_at DESC
            LIMIT %s;
            """,
            (limit,),
        )
        return cur.fetchall()
