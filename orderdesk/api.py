"""HTTP endpoints for orders."""

from __future__ import annotations

import json
import re

from flask import Blueprint, jsonify, request
from sqlalchemy.exc import SQLAlchemyError

from .errorutil import log_on_error
from .logsetup import get_logger
from .models import Order, order_from_json
from .orders import add_order, all_orders, count_orders, delete_order, page_orders, update_order

_INT_RE = re.compile(r"[+-]?[0-9]+")
_UINT_RE = re.compile(r"[0-9]+")
_INT_MIN, _INT_MAX = -(2**63), 2**63 - 1
_UINT_MAX = 2**64 - 1


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def _bind_order() -> Order:
    raw = request.get_data(as_text=True)
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ValueError(str(exc)) from exc
    return order_from_json(data)


def _parse_int(text: str) -> int | None:
    if not _INT_RE.fullmatch(text):
        return None
    value = int(text)
    return value if _INT_MIN <= value <= _INT_MAX else None


def add_order_view():
    """Create or upsert the order in the request body."""
    log = get_logger()
    log.debug("add order")
    try:
        order = _bind_order()
    except ValueError as exc:
        log.error("cannot parse request body: %s", exc)
        return _error(str(exc), 400)
    try:
        add_order(order)
    except SQLAlchemyError as exc:
        log.error("adding order failed: %s", exc)
        return _error(str(exc), 500)
    return jsonify("添加成功"), 200


def delete_order_view(order_id: str):
    """Delete the order whose primary key is in the path."""
    log = get_logger()
    log.debug("delete order, id=%s", order_id)
    if not _UINT_RE.fullmatch(order_id) or int(order_id) > _UINT_MAX:
        log.error("delete order: bad id")
        return _error("删除订单, 参数错误", 400)
    try:
        delete_order(int(order_id))
    except SQLAlchemyError as exc:
        log.error("deleting order failed: %s", exc)
        return _error(str(exc), 500)
    return jsonify("删除成功"), 200


def update_order_view():
    """Update the order named by the shop order id in the request body."""
    log = get_logger()
    log.debug("update order")
    try:
        order = _bind_order()
    except ValueError as exc:
        log.error("cannot parse request body: %s", exc)
        return _error(str(exc), 400)
    try:
        update_order(order.pdd_order_id, order)
    except SQLAlchemyError as exc:
        log.error("updating order failed: %s", exc)
        return _error(str(exc), 500)
    return jsonify("修改成功"), 200


def _total() -> int:
    try:
        return count_orders()
    except SQLAlchemyError as exc:
        log_on_error(exc, "查询订单总数失败")
        return 0


def list_orders_view():
    """Return every order with the total count."""
    get_logger().debug("list all orders")
    total = _total()
    try:
        orders = all_orders()
    except SQLAlchemyError:
        orders = []
    return jsonify({"total": total, "data": [o.to_dict() for o in orders]}), 200


def page_orders_view():
    """Return one page of orders; ``page`` and ``size`` query parameters are required."""
    page_text = request.args.get("page", "")
    size_text = request.args.get("size", "")
    get_logger().debug("page query, page=%s, size=%s", page_text, size_text)
    if page_text == "" or size_text == "":
        return _error("参数缺失", 400)
    page = _parse_int(page_text)
    if page is None:
        return _error("page参数类型错误", 400)
    size = _parse_int(size_text)
    if size is None:
        return _error("size参数类型错误", 400)
    total = _total()
    try:
        orders = page_orders(page, size)
    except SQLAlchemyError:
        orders = []
    return jsonify({"total": total, "data": [o.to_dict() for o in orders]}), 200


def create_blueprint() -> Blueprint:
    """Return a blueprint with the order routes."""
    bp = Blueprint("orders", __name__)
    bp.add_url_rule("/orders", "add_order", add_order_view, methods=["POST"])
    bp.add_url_rule("/orders/<order_id>", "delete_order", delete_order_view, methods=["DELETE"])
    bp.add_url_rule("/orders", "update_order", update_order_view, methods=["PUT"])
    bp.add_url_rule("/orders", "page_orders", page_orders_view, methods=["GET"])
    return bp