"""Storage of shop orders: upsert, update, delete, lookup and paging."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from sqlalchemy import delete as sa_delete
from sqlalchemy import func, select
from sqlalchemy import update as sa_update
from sqlalchemy.exc import SQLAlchemyError

from .database import session_scope
from .logsetup import get_logger
from .models import Order

# Columns an upsert rewrites when the (shop id, drop-shipping id) pair already exists.
_UPSERT_COLUMNS: tuple[str, ...] = (
    "pdd_order_time",
    "pdd_order_price",
    "pdd_product_type",
    "pdd_product_color",
    "pdd_order_status",
    "pdd_buyer_info",
    "pdd_express_company",
    "pdd_express_id",
    "pdd_is_black_list",
    "pdd_remark",
    "drop_shipping_platform",
    "drop_shipping_order_time",
    "drop_shipping_factory_name",
    "drop_shipping_real_price",
    "drop_shipping_price",
    "drop_shipping_discount_price",
    "drop_shipping_remark",
)

# Columns an update may change; zero values are written too.
_UPDATE_COLUMNS: tuple[str, ...] = _UPSERT_COLUMNS + ("drop_shipping_order_id",)

_ALL_COLUMNS: tuple[str, ...] = ("pdd_order_id",) + _UPDATE_COLUMNS


@contextmanager
def _reporting(action: str) -> Iterator[None]:
    try:
        yield
    except SQLAlchemyError as exc:
        get_logger().error("%s order failed: %s", action, exc)
        raise


def _value(order: Order, name: str) -> Any:
    value = getattr(order, name)
    if value is None:
        default = Order.__table__.c[name].default
        if default is not None and default.is_scalar:
            value = default.arg
    return value


def _pick(updates: Mapping[str, Any]) -> dict[str, Any]:
    allowed = {name.replace("_", ""): name for name in _UPDATE_COLUMNS}
    picked = {}
    for key, value in updates.items():
        name = allowed.get(str(key).lower().replace("_", ""))
        if name is not None:
            picked[name] = value
    return picked


def add_order(order: Order) -> Order:
    """Insert ``order``, or rewrite the row with the same order-id pair; set and return its id."""
    with _reporting("create"), session_scope() as session:
        existing = session.scalar(
            select(Order).where(
                Order.pdd_order_id == _value(order, "pdd_order_id"),
                Order.drop_shipping_order_id == _value(order, "drop_shipping_order_id"),
            )
        )
        if existing is None and order.id is not None:
            existing = session.get(Order, order.id)
        if existing is None:
            for name in _ALL_COLUMNS:
                setattr(order, name, _value(order, name))
            session.add(order)
        else:
            for name in _UPSERT_COLUMNS:
                setattr(existing, name, _value(order, name))
        session.flush()
        if existing is not None:
            order.id = existing.id
    get_logger().info("created order: %r", order)
    return order


def batch_add_orders(orders: Iterable[Order]) -> list[Order]:
    """Add each order in turn, skipping failures; return the orders stored."""
    stored = []
    log = get_logger()
    for index, order in enumerate(orders, start=1):
        try:
            add_order(order)
        except SQLAlchemyError as exc:
            log.error("batch create #%d failed: %s", index, exc)
            continue
        log.debug("batch create #%d succeeded, order: %r", index, order)
        stored.append(order)
    return stored


def delete_order(id: int) -> int:
    """Delete the order with primary key ``id``; return the number of rows removed."""
    get_logger().debug("deleting order, id=%s", id)
    with _reporting("delete"), session_scope() as session:
        count = session.execute(sa_delete(Order).where(Order.id == id)).rowcount
    get_logger().info("deleted order: %s", id)
    return count


def batch_delete_orders(ids: Iterable[int]) -> int:
    """Delete every order whose primary key is in ``ids``; return the number removed."""
    ids = list(ids)
    if not ids:
        return 0
    with _reporting("batch delete"), session_scope() as session:
        count = session.execute(sa_delete(Order).where(Order.id.in_(ids))).rowcount
    get_logger().debug("batch deleted orders: %s", ids)
    return count


def update_order(pdd_order_id: str, order: Order) -> int:
    """Write every updatable field of ``order`` to the rows with ``pdd_order_id``.

    When ``order`` carries an id, only that row is touched. Returns rows changed.
    """
    stmt = sa_update(Order).where(Order.pdd_order_id == pdd_order_id)
    if order.id:
        stmt = stmt.where(Order.id == order.id)
    values = {name: _value(order, name) for name in _UPDATE_COLUMNS}
    with _reporting("update"), session_scope() as session:
        count = session.execute(stmt.values(**values)).rowcount
    get_logger().info("updated order: %s", pdd_order_id)
    return count


def batch_update_orders(updates: Mapping[Any, Mapping[str, Any]]) -> int:
    """Apply each mapping of column changes to the rows with that shop order id.

    Keys match column or JSON names case-insensitively; other keys are ignored.
    Failures are logged and skipped. Returns rows changed in total.
    """
    total = 0
    log = get_logger()
    for pdd_order_id, change in updates.items():
        values = _pick(change)
        if not values:
            log.debug("nothing to update for order %s", pdd_order_id)
            continue
        try:
            with session_scope() as session:
                total += session.execute(
                    sa_update(Order)
                    .where(Order.pdd_order_id == str(pdd_order_id))
                    .values(**values)
                ).rowcount
        except SQLAlchemyError as exc:
            log.error("updating order %s failed: %s", pdd_order_id, exc)
            continue
        log.debug("updating order %s succeeded", pdd_order_id)
    return total


def get_order(id: int) -> Order | None:
    """Return the order with primary key ``id``, or None if there is none."""
    with _reporting("query"), session_scope() as session:
        order = session.get(Order, id)
    if order is None:
        get_logger().error("query order failed: record %s not found", id)
        return None
    get_logger().info("queried order: %r", order)
    return order


def batch_get_orders(ids: Iterable[int]) -> list[Order]:
    """Return the orders whose primary keys are in ``ids``, ordered by id."""
    ids = list(ids)
    if not ids:
        return []
    with _reporting("batch query"), session_scope() as session:
        orders = list(
            session.scalars(select(Order).where(Order.id.in_(ids)).order_by(Order.id))
        )
    get_logger().debug("batch query found %d orders", len(orders))
    return orders


def all_orders() -> list[Order]:
    """Return every order, ordered by id."""
    with _reporting("query all"), session_scope() as session:
        orders = list(session.scalars(select(Order).order_by(Order.id)))
    get_logger().debug("query found %d orders", len(orders))
    return orders


def count_orders() -> int:
    """Return the number of stored orders."""
    with _reporting("count"), session_scope() as session:
        count = session.scalar(select(func.count()).select_from(Order)) or 0
    get_logger().info("order count: %d", count)
    return count


def page_orders(page_num: int, page_size: int) -> list[Order]:
    """Return page ``page_num`` (from 1) of ``page_size`` orders, ordered by id.

    A negative size means no limit; an offset below one means none.
    """
    stmt = select(Order).order_by(Order.id)
    if page_size >= 0:
        stmt = stmt.limit(page_size)
    offset = (page_num - 1) * page_size
    if offset > 0:
        stmt = stmt.offset(offset)
    with _reporting("page query"), session_scope() as session:
        orders = list(session.scalars(stmt))
    get_logger().info("page query found %d orders", len(orders))
    return orders