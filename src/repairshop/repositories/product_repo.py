from __future__ import annotations

from psycopg import Connection

from ..domain import Product
from ..errors import OutOfStock

_COLUMNS = """
    id, name, description, sku, price, stock, category, brand, model, image_url,
    created_at, updated_at
"""


class ProductRepository:
    def upsert_by_sku(self, conn: Connection, product: Product) -> str:
        cur = conn.execute(
            """
            INSERT INTO product(id, name, description, sku, price, stock, category,
                                brand, model, image_url, created_at, updated_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (sku) DO UPDATE SET
              name = EXCLUDED.name,
              description = EXCLUDED.description,
              price = EXCLUDED.price,
              stock = EXCLUDED.stock,
              category = EXCLUDED.category,
              brand = EXCLUDED.brand,
              model = EXCLUDED.model,
              image_url = EXCLUDED.image_url,
              updated_at = EXCLUDED.updated_at
            RETURNING id;
            """,
            (
                product.id,
                product.name,
                product.description,
                product.sku,
                product.price,
                product.stock,
                product.category,
                product.brand,
                product.model,
                product.image_url,
                product.created_at,
                product.updated_at,
            ),
        )
        return str(cur.fetchone()["id"])

    def get(self, conn: Connection, product_id: str) -> Product | None:
        cur = conn.execute(f"SELECT {_COLUMNS} FROM product WHERE id = %s;", (product_id,))
        row = cur.fetchone()
        return Product(**row) if row else None

    def get_by_sku(self, conn: Connection, sku: str) -> Product | None:
        cur = conn.execute(f"SELECT {_COLUMNS} FROM product WHERE sku = %s;", (sku,))
        row = cur.fetchone()
        return Product(**row) if row else None

    def list(self, conn: Connection, limit: int = 50) -> list[Product]:
        cur = conn.execute(
            f"SELECT {_COLUMNS} FROM product ORDER BY name LIMIT %s;",
            (limit,),
        )
        return [Product(**row) for row in cur.fetchall()]

    def decrease_stock(self, conn: Connection, *, product_id: str, qty: int, product_name: str = "") -> None:
        cur = conn.execute(
            """
            UPDATE product
            SET stock = stock - %s, updated_at = now()
            WHERE id = %s AND stock >= %s;
            """,
            (qty, product_id, qty),
        )
        if cur.rowcount != 1:
            raise OutOfStock(product_id, product_name)

    def set_stock(self, conn: Connection, product: Product) -> None:
        conn.execute(
            "UPDATE product SET stock = %s, updated_at = %s WHERE id = %s;",
            (product.stock, product.updated_at, product.id),
        )
