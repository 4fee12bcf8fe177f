"""Database tables and the JSON form of orders."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sqlalchemy import Boolean, Float, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Declarative base for every table."""


class Website(Base):
    """A site comics are collected from."""

    __tablename__ = "websites"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    need_proxy: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return f"Website(id={self.id}, name_id={self.name_id}, name={self.name!r}, url={self.url!r})"


class Country(Base):
    """Country of origin."""

    __tablename__ = "countries"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"Country(id={self.id}, name_id={self.name_id}, name={self.name!r})"


class Category(Base):
    """Broad category of a comic."""

    __tablename__ = "categories"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"Category(id={self.id}, name_id={self.name_id}, name={self.name!r})"


class BookType(Base):
    """Genre in a tree: ``level`` 1 to 3, ``parent`` is the parent's name id."""

    __tablename__ = "types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name_id: Mapped[int] = mapped_column(Integer, nullable=False, unique=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    parent: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    def __repr__(self) -> str:
        return (
            f"BookType(id={self.id}, name_id={self.name_id}, name={self.name!r}, "
            f"level={self.level}, parent={self.parent})"
        )


# (attribute, JSON key, value type)
_ORDER_FIELDS: tuple[tuple[str, str, type], ...] = (
    ("id", "id", int),
    ("pdd_order_id", "pddOrderId", str),
    ("pdd_order_time", "pddOrderTime", str),
    ("pdd_order_price", "pddOrderPrice", float),
    ("pdd_product_type", "pddProductType", str),
    ("pdd_product_color", "pddProductColor", str),
    ("pdd_order_status", "pddOrderStatus", str),
    ("pdd_buyer_info", "pddBuyerInfo", str),
    ("pdd_express_company", "pddExpressCompany", str),
    ("pdd_express_id", "pddExpressId", str),
    ("pdd_is_black_list", "pddIsBlackList", bool),
    ("pdd_remark", "pddRemark", str),
    ("drop_shipping_platform", "dropShippingPlatform", str),
    ("drop_shipping_order_id", "dropShippingOrderId", str),
    ("drop_shipping_order_time", "dropShippingOrderTime", str),
    ("drop_shipping_factory_name", "dropShippingFactoryName", str),
    ("drop_shipping_real_price", "dropShippingRealPrice", float),
    ("drop_shipping_price", "dropShippingPrice", float),
    ("drop_shipping_discount_price", "dropShippingDiscountPrice", float),
    ("drop_shipping_remark", "dropShippingRemark", str),
)

_ZERO = {int: 0, str: "", float: 0.0, bool: False}
_TYPE_NAMES = {int: "unsigned integer", str: "string", float: "number", bool: "boolean"}


class Order(Base):
    """A shop order together with its drop-shipping counterpart."""

    __tablename__ = "orders"
    __table_args__ = (
        UniqueConstraint("pdd_order_id", "drop_shipping_order_id", name="pdd_drop_shipping_unique"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    pdd_order_id: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    pdd_order_time: Mapped[str] = mapped_column(Text, nullable=False, default="")
    pdd_order_price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    pdd_product_type: Mapped[str] = mapped_column(Text, nullable=False, default="")
    pdd_product_color: Mapped[str] = mapped_column(Text, nullable=False, default="")
    pdd_order_status: Mapped[str] = mapped_column(Text, default="")
    pdd_buyer_info: Mapped[str] = mapped_column(Text, nullable=False, default="")
    pdd_express_company: Mapped[str] = mapped_column(Text, default="")
    pdd_express_id: Mapped[str] = mapped_column(Text, default="")
    pdd_is_black_list: Mapped[bool] = mapped_column(Boolean, default=False)
    pdd_remark: Mapped[str] = mapped_column(Text, default="")

    drop_shipping_platform: Mapped[str] = mapped_column(Text, default="")
    drop_shipping_order_id: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    drop_shipping_order_time: Mapped[str] = mapped_column(Text, default="")
    drop_shipping_factory_name: Mapped[str] = mapped_column(Text, default="")
    drop_shipping_real_price: Mapped[float] = mapped_column(Float, default=0.0)
    drop_shipping_price: Mapped[float] = mapped_column(Float, default=0.0)
    drop_shipping_discount_price: Mapped[float] = mapped_column(Float, default=0.0)
    drop_shipping_remark: Mapped[str] = mapped_column(Text, default="")

    def to_dict(self) -> dict[str, Any]:
        """Return the order under its JSON keys, unset values as zero values."""
        result = {}
        for attr, key, kind in _ORDER_FIELDS:
            value = getattr(self, attr)
            result[key] = _ZERO[kind] if value is None else value
        return result

    def __repr__(self) -> str:
        return (
            f"Order(id={self.id}, pdd_order_id={self.pdd_order_id!r}, "
            f"drop_shipping_order_id={self.drop_shipping_order_id!r})"
        )


def _coerce(raw: Any, kind: type, key: str) -> Any:
    if raw is None:
        return _ZERO[kind]
    if kind is bool:
        ok = isinstance(raw, bool)
    elif kind is str:
        ok = isinstance(raw, str)
    elif kind is float:
        ok = isinstance(raw, (int, float)) and not isinstance(raw, bool)
    else:
        ok = isinstance(raw, int) and not isinstance(raw, bool) and raw >= 0
    if not ok:
        raise ValueError(
            f"cannot unmarshal {raw!r} into field {key} of type {_TYPE_NAMES[kind]}"
        )
    return float(raw) if kind is float else raw


def order_from_json(data: Any) -> Order:
    """Build an ``Order`` from a decoded JSON object.

    Keys match case-insensitively, unknown keys are ignored and missing or
    null values become zero values. A value of the wrong type raises ValueError.
    """
    if not isinstance(data, Mapping):
        raise ValueError("request body must be a JSON object")
    folded: dict[str, Any] = {}
    for key in data:
        folded.setdefault(str(key).lower(), key)
    values = {}
    for attr, key, kind in _ORDER_FIELDS:
        source = key if key in data else folded.get(key.lower())
        raw = data[source] if source is not None else None
        values[attr] = _coerce(raw, kind, key)
    if values["id"] == 0:
        values["id"] = None
    return Order(**values)