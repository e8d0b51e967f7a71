from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Optional

from ..domain import Budget, RepairOrder, User
from ..errors import Forbidden, ValidationError
from ..money import Amount, parse_amount, q2
from .order_service import can_manage

log = logging.getLogger(__name__)

# Budgets are drafted once the technician has diagnosed the device.
BUDGETABLE_STATUSES = frozenset({"IN_PROGRESS"})


@dataclass(frozen=True)
class BudgetInput:
    labor_cost: Decimal
    parts_cost: Decimal
    additional_costs: Decimal
    additional_costs_description: Optional[str]

    def __post_init__(self) -> None:
        errors: dict[str, str] = {}
        for name in ("labor_cost", "parts_cost", "additional_costs"):
            value = getattr(self, name)
            if not isinstance(value, Decimal) or not value.is_finite():
                errors[name] = f"{name} must be a valid number."
            elif value < 0:
                errors[name] = f"{name} cannot be negative."

        additional = self.additional_costs
        if (
            "additional_costs" not in errors
            and additional > 0
            and not (self.additional_costs_description or "").strip()
        ):
            errors["additional_costs_description"] = "Describe the additional costs."

        if errors:
            raise ValidationError(errors)


def compute_total(labor: Amount, parts: Amount, additional: Amount = Decimal("0")) -> Decimal:
    """Exact sum of the three cost components; rounding is left to display."""
    return parse_amount(labor, "labor_cost") + parse_amount(parts, "parts_cost") + (
        parse_amount(additional, "additional_costs", required=False) or Decimal("0")
    )


def display_total(budget: Budget) -> Decimal:
    return q2(budget.total_cost)


def validate_budget_input(
    *,
    labor_cost: Amount | None,
    parts_cost: Amount | None,
    additional_costs: Amount | None = None,
    additional_costs_description: str | None = None,
) -> BudgetInput:
    errors: dict[str, str] = {}
    parsed: dict[str, Decimal | None] = {}

    for name, raw, required in (
        ("labor_cost", labor_cost, True),
        ("parts_cost", parts_cost, True),
        ("additional_costs", additional_costs, False),
    ):
        try:
            parsed[name] = parse_amount(raw, name, required=required)
        except ValidationError as e:
            errors.update(e.errors)

    additional = parsed.get("additional_costs") or Decimal("0")
    description = (additional_costs_description or "").strip() or None
    if additional > 0 and description is None:
        errors["additional_costs_description"] = "Describe the additional costs."

    if errors:
        raise ValidationError(errors)

    return BudgetInput(
        labor_cost=parsed["labor_cost"],
        parts_cost=parsed["parts_cost"],
        additional_costs=additional,
        additional_costs_description=description,
    )


def create_budget(
    order: RepairOrder,
    data: BudgetInput,
    actor: User,
    *,
    now: datetime | None = None,
    budget_id: str | None = None,
) -> Budget:
    if not can_manage(order, actor):
        raise Forbidden(f"User {actor.id} cannot draft a budget for order {order.id}.")
    if order.status not in BUDGETABLE_STATUSES:
        raise ValidationError(
            f"Order {order.id} is {order.status}; budgets need an order in progress.",
            field="repair_order_id",
        )

    ts = now or datetime.now()
    budget = Budget(
        id=budget_id or uuid.uuid4().hex,
        repair_order_id=order.id,
        labor_cost=data.labor_cost,
        parts_cost=data.parts_cost,
        additional_costs=data.additional_costs,
        additional_costs_description=data.additional_costs_description,
        approved=False,
        created_at=ts,
        updated_at=ts,
    )
    log.info("Budget %s drafted for order %s, total %s", budget.id, order.id, q2(budget.total_cost))
    return budget


def _set_approval(budget: Budget, approved: bool, actor: User, now: datetime | None) -> Budget:
    if not actor.is_admin:
        log.warning("User %s (%s) tried to decide budget %s", actor.id, actor.role, budget.id)
        raise Forbidden("Only an administrator can approve or reject budgets.")
    if budget.approved == approved:
        return budget

    log.info("Budget %s %s by %s", budget.id, "approved" if approved else "rejected", actor.id)
    return replace(budget, approved=approved, updated_at=now or datetime.now())


def approve(budget: Budget, actor: User, *, now: datetime | None = None) -> Budget:
    return _set_approval(budget, True, actor, now)


def reject(budget: Budget, actor: User, *, now: datetime | None = None) -> Budget:
    return _set_approval(budget, False, actor, now)
