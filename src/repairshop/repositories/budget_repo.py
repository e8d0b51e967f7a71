from __future__ import annotations

from datetime import datetime

from psycopg import Connection

from ..domain import Budget
from ..errors import StaleWriteError

_COLUMNS = """
    id, repair_order_id, labor_cost, parts_cost, additional_costs,
    additional_costs_description, approved, created_at, updated_at
"""


class BudgetRepository:
    def create(self, conn: Connection, budget: Budget) -> str:
        # total_cost is stored for reporting only; the dataclass always recomputes it
        cur = conn.execute(
            """
            INSERT INTO budget(id, repair_order_id, labor_cost, parts_cost, additional_costs,
                               additional_costs_description, total_cost, approved,
                               created_at, updated_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING id;
            """,
            (
                budget.id,
                budget.repair_order_id,
                budget.labor_cost,
                budget.parts_cost,
                budget.additional_costs,
                budget.additional_costs_description,
                budget.total_cost,
                budget.approved,
                budget.created_at,
                budget.updated_at,
            ),
        )
        return str(cur.fetchone()["id"])

    def get(self, conn: Connection, budget_id: str) -> Budget | None:
        cur = conn.execute(f"SELECT {_COLUMNS} FROM budget WHERE id = %s;", (budget_id,))
        row = cur.fetchone()
        return Budget(**row) if row else None

    def list_for_order(self, conn: Connection, order_id: str) -> list[Budget]:
        cur = conn.execute(
            f"SELECT {_COLUMNS} FROM budget WHERE repair_order_id = %s ORDER BY created_at;",
            (order_id,),
        )
        return [Budget(**row) for row in cur.fetchall()]

    def list_pending(self, conn: Connection, limit: int = 50) -> list[Budget]:
        cur = conn.execute(
            f"SELECT {_COLUMNS} FROM budget WHERE NOT approved ORDER BY created_at LIMIT %s;",
            (limit,),
        )
        return [Budget(**row) for row in cur.fetchall()]

    def save_approval(self, conn: Connection, budget: Budget, *, read_at: datetime) -> None:
        cur = conn.execute(
            """
            UPDATE budget SET approved = %s, updated_at = %s
            WHERE id = %s AND updated_at = %s;
            """,
            (budget.approved, budget.updated_at, budget.id, read_at),
        )
        if cur.rowcount != 1:
            raise StaleWriteError(f"Budget {budget.id} was changed by someone else.")
