from __future__ import annotations

import logging

from .config import AppConfig
from .db import Db
from .domain import REPAIR_STATUSES, Customer, User
from .errors import (
    Forbidden,
    InsufficientPayment,
    InvalidTransition,
    OutOfStock,
    StaleWriteError,
    ValidationError,
)
from .money import fmt
from .repositories.budget_repo import BudgetRepository
from .repositories.order_repo import OrderRepository
from .repositories.product_repo import ProductRepository
from .repositories.sale_repo import SaleRepository
from .services import budget_service, order_service, product_service
from .services.cart import Cart
from .services.checkout import CheckoutService, summarize
from .services.stock import classify, low_stock_alerts

log = logging.getLogger(__name__)


def _prompt(msg: str) -> str:
    return input(msg).strip()


def _pos_session(db: Db, checkout: CheckoutService, product_repo: ProductRepository, symbol: str) -> None:
    cart = Cart()
    while True:
        for item in cart.items:
            print(f"  [{item.id}] {item.product_name} x{item.quantity} = {fmt(item.total_price, symbol)}")
        s = summarize(cart)
        print(f"  subtotal={fmt(s.subtotal, symbol)} tax={fmt(s.tax, symbol)} total={fmt(s.total, symbol)}")

        cmd = _prompt("pos (add SKU / + id / - id / rm id / pay / q): ").split()
        if not cmd:
            continue
        op, arg = cmd[0].lower(), (cmd[1] if len(cmd) > 1 else "")
        try:
            if op == "q":
                return
            elif op == "add":
                with db.session() as conn:
                    product = product_repo.get_by_sku(conn, arg.upper())
                if product is None:
                    print(f"Unknown SKU: {arg}")
                else:
                    cart.add(product)
            elif op == "+":
                cart.increment(arg)
            elif op == "-":
                cart.decrement(arg)
            elif op == "rm":
                cart.remove(arg)
            elif op == "pay":
                method = _prompt("method (CASH/YAPE/CARD): ").upper()
                fields: dict[str, str] = {}
                if method == "CASH":
                    fields["received_amount"] = _prompt("received amount: ")
                elif method == "YAPE":
                    fields["phone_number"] = _prompt("Yape phone: ")
                    fields["reference"] = _prompt("operation code: ")
                elif method == "CARD":
                    fields["reference"] = _prompt("card reference: ")
                customer = Customer(
                    name=_prompt("customer name (optional): ") or None,
                    phone=_prompt("customer phone (optional): ") or None,
                )
                with db.transaction() as conn:
                    sale = checkout.complete_sale(conn, cart, method, fields, customer=customer)
                print(f"Sale #{sale.id} total={fmt(sale.total, symbol)}")
                if sale.payment.method == "CASH":
                    print(f"Change: {fmt(sale.payment.change, symbol)}")
                return
            else:
                print("Unknown command.")
        except InsufficientPayment as e:
            print(f"[PAYMENT] received {fmt(e.received, symbol)} < total {fmt(e.total, symbol)}")
        except OutOfStock as e:
            print(f"[STOCK] {e}")
        except ValidationError as e:
            print(f"[INPUT ERROR] {e}")


def run_cli(db: Db, cfg: AppConfig, actor: User) -> None:
    product_repo = ProductRepository()
    order_repo = OrderRepository()
    budget_repo = BudgetRepository()
    sale_repo = SaleRepository()
    checkout = CheckoutService(product_repo=product_repo, sale_repo=sale_repo)
    symbol = cfg.business.currency_symbol

    while True:
        print(f"\n=== {cfg.name} ({actor.role} {actor.id}) ===")
        print("1) List products (stock)")
        print("2) Low stock alerts")
        print("3) Add product")
        print("4) Restock product")
        print("5) List orders")
        print("6) Create repair order")
        print("7) Advance order status")
        print("8) Cancel order")
        print("9) Record diagnosis")
        print("10) Draft budget")
        print("11) Approve / reject budget")
        print("12) Point of sale")
        print("13) Order budgets")
        print("14) Recent sales")
        print("0) Exit")

        choice = _prompt("> ")
        try:
            if choice == "0":
                return

            elif choice == "1":
                with db.session() as conn:
                    products = product_repo.list(conn, limit=100)
                for p in products:
                    print(f"{p.sku} {p.name} price={fmt(p.price, symbol)} stock={p.stock} [{classify(p.stock)}]")

            elif choice == "2":
                with db.session() as conn:
                    alerts = low_stock_alerts(product_repo.list(conn, limit=1000))
                if not alerts:
                    print("All products in stock.")
                for p in alerts:
                    print(f"  {classify(p.stock)}: {p.sku} {p.name} stock={p.stock}")

            elif choice == "3":
                category = _prompt("category: ")
                brand = _prompt("brand: ")
                sku = _prompt("SKU (blank to generate): ") or product_service.generate_sku(category, brand)
                product = product_service.create_product(
                    product_service.CreateProductInput(
                        name=_prompt("name: "),
                        description=_prompt("description: "),
                        sku=sku,
                        price=_prompt("price: "),
                        stock=_prompt("initial stock: "),
                        category=category,
                        brand=brand,
                        model=_prompt("model (optional): ") or None,
                    )
                )
                with db.transaction() as conn:
                    product_repo.upsert_by_sku(conn, product)
                print(f"Saved {product.sku}")

            elif choice == "4":
                sku = _prompt("SKU: ").upper()
                qty = int(_prompt("quantity: "))
                with db.transaction() as conn:
                    product = product_repo.get_by_sku(conn, sku)
                    if product is None:
                        print(f"Unknown SKU: {sku}")
                        continue
                    product = product_service.restock(product, qty)
                    product_repo.set_stock(conn, product)
                print(f"{product.sku} stock={product.stock}")

            elif choice == "5":
                status = _prompt(f"status filter ({'/'.join(REPAIR_STATUSES)}, blank = all): ").upper() or None
                if status is not None and status not in REPAIR_STATUSES:
                    print(f"Unknown status: {status}")
                    continue
                with db.session() as conn:
                    rows = order_repo.list(conn, technician_id=None if actor.is_admin else actor.id, limit=100)
                for o in order_service.visible_orders(rows, actor, status=status):
                    first = o.devices[0]
                    print(f"#{o.id[:8]} {o.status} {o.customer_name} {first.brand} {first.model}")

            elif choice == "6":
                devices = []
                while True:
                    devices.append(
                        order_service.CreateDeviceInput(
                            brand=_prompt("  brand: "),
                            model=_prompt("  model: "),
                            device_type=_prompt("  type (LAPTOP/TV/...): ").upper() or "OTHER",
                            serial_number=_prompt("  serial (optional): "),
                            reported_issue=_prompt("  reported issue: "),
                            review_cost=_prompt(f"  review cost (default {cfg.business.default_review_cost}): "),
                            accessories=_prompt("  accessories (comma separated): ").split(","),
                        )
                    )
                    if _prompt("Add another device? (y/n): ").lower() != "y":
                        break
                order = order_service.create_order(
                    order_service.CreateOrderInput(
                        customer_name=_prompt("customer name: "),
                        customer_phone=_prompt("customer phone: "),
                        customer_email=_prompt("customer email (optional): ") or None,
                        technician_id=_prompt("technician id (blank = me): ") or actor.id,
                        devices=devices,
                    ),
                    default_review_cost=cfg.business.default_review_cost,
                )
                with db.transaction() as conn:
                    order_repo.create(conn, order)
                print(f"Created order {order.id}")

            elif choice in ("7", "8", "9"):
                order_id = _prompt("order id: ")
                with db.transaction() as conn:
                    order = order_repo.get(conn, order_id)
                    if order is None:
                        print("Order not found.")
                        continue
                    if choice == "7":
                        updated = order_service.advance(order, actor)
                    elif choice == "8":
                        updated = order_service.cancel(order, actor)
                    else:
                        for d in order.devices:
                            print(f"  {d.id} {d.brand} {d.model}: {d.reported_issue}")
                        updated = order_service.update_diagnosis(
                            order, _prompt("device id: "), _prompt("diagnosis: "), actor
                        )
                    order_repo.save(conn, updated, read_at=order.updated_at)
                print(f"Order {updated.id} is {updated.status}")

            elif choice == "10":
                order_id = _prompt("order id: ")
                data = budget_service.validate_budget_input(
                    labor_cost=_prompt("labor cost: "),
                    parts_cost=_prompt("parts cost: "),
                    additional_costs=_prompt("additional costs (optional): "),
                    additional_costs_description=_prompt("additional costs description: "),
                )
                with db.transaction() as conn:
                    order = order_repo.get(conn, order_id)
                    if order is None:
                        print("Order not found.")
                        continue
                    budget = budget_service.create_budget(order, data, actor)
                    budget_repo.create(conn, budget)
                print(f"Budget {budget.id} total={fmt(budget.total_cost, symbol)}")

            elif choice == "11":
                with db.session() as conn:
                    pending = budget_repo.list_pending(conn)
                for b in pending:
                    print(f"  {b.id} order={b.repair_order_id[:8]} total={fmt(b.total_cost, symbol)}")
                budget_id = _prompt("budget id: ")
                decision = _prompt("approve or reject (a/r): ").lower()
                with db.transaction() as conn:
                    budget = budget_repo.get(conn, budget_id)
                    if budget is None:
                        print("Budget not found.")
                        continue
                    decide = budget_service.approve if decision == "a" else budget_service.reject
                    updated = decide(budget, actor)
                    if updated is not budget:
                        budget_repo.save_approval(conn, updated, read_at=budget.updated_at)
                print(f"Budget {updated.id} approved={updated.approved}")

            elif choice == "12":
                _pos_session(db, checkout, product_repo, symbol)

            elif choice == "13":
                order_id = _prompt("order id: ")
                with db.session() as conn:
                    order = order_repo.get(conn, order_id)
                    budgets = budget_repo.list_for_order(conn, order_id) if order else []
                if order is None or not order_service.can_manage(order, actor):
                    print("Order not found.")
                    continue
                if not budgets:
                    print("No budgets for this order.")
                for b in budgets:
                    state = "approved" if b.approved else "pending"
                    print(f"  {b.id} {state} total={fmt(b.total_cost, symbol)}")
                    if b.additional_costs_description:
                        print(f"    additional: {b.additional_costs_description}")

            elif choice == "14":
                with db.session() as conn:
                    sales = sale_repo.list_recent(conn, limit=20)
                for s in sales:
                    who = s["customer_name"] or "-"
                    print(
                        f"#{s['id']} {s['created_at']:%Y-%m-%d %H:%M} {s['payment_method']} "
                        f"units={s['units']} total={fmt(s['total'], symbol)} {who}"
                    )

            else:
                print("Unknown choice.")

        except Forbidden as e:
            print(f"[FORBIDDEN] {e}")
        except InvalidTransition as e:
            print(f"[INVALID TRANSITION] {e}")
        except StaleWriteError as e:
            print(f"[CONFLICT] {e} Reload and try again.")
        except ValidationError as e:
            for field, msg in e.errors.items():
                print(f"[INPUT ERROR] {field}: {msg}")
        except ValueError as e:
            print(f"[VALUE ERROR] {e}")
        except Exception as e:
            log.exception("Unexpected error in menu choice %s", choice)
            print(f"[ERROR] {type(e).__name__}: {e}")
