"""Lookup tables (websites, countries, categories, book types) and their defaults."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any, Union

from sqlalchemy import delete as sa_delete
from sqlalchemy import select
from sqlalchemy import update as sa_update
from sqlalchemy.exc import SQLAlchemyError

from .database import session_scope
from .logsetup import get_logger
from .models import BookType, Category, Country, Website

CatalogItem = Union[Website, Country, Category, BookType]

# Columns that an upsert or an update may change, per table.
_UPDATABLE: dict[type, tuple[str, ...]] = {
    Website: ("name", "url"),
    Country: ("name",),
    Category: ("name",),
    BookType: ("name", "level", "parent"),
}
_LABELS: dict[type, str] = {
    Website: "website",
    Country: "country",
    Category: "category",
    BookType: "type",
}


class CatalogRepository:
    """Create, read, update and delete rows of one lookup table keyed by ``name_id``."""

    def __init__(self, model: type) -> None:
        if model not in _UPDATABLE:
            raise TypeError(f"no catalog table for {model!r}")
        self.model = model
        self.fields = _UPDATABLE[model]
        self.label = _LABELS[model]

    def __repr__(self) -> str:
        return f"CatalogRepository({self.model.__name__})"

    @contextmanager
    def _reporting(self, action: str) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            get_logger().error("%s %s failed: %s", action, self.label, exc)
            raise

    def _stored_value(self, item: CatalogItem, name: str) -> Any:
        value = getattr(item, name)
        if value is None:
            default = self.model.__table__.c[name].default
            if default is not None and default.is_scalar:
                value = default.arg
        return value

    def _pick(self, updates: Mapping[str, Any]) -> dict[str, Any]:
        allowed = {name.replace("_", ""): name for name in self.fields}
        picked = {}
        for key, value in updates.items():
            name = allowed.get(str(key).lower().replace("_", ""))
            if name is not None:
                picked[name] = value
        return picked

    def add(self, item: CatalogItem) -> CatalogItem:
        """Insert ``item``, or update the row with the same ``name_id``; set and return its id."""
        if not isinstance(item, self.model):
            raise TypeError(f"expected {self.model.__name__}, got {type(item).__name__}")
        with self._reporting("create"), session_scope() as session:
            existing = session.scalar(
                select(self.model).where(self.model.name_id == item.name_id)
            )
            if existing is None:
                session.add(item)
            else:
                for name in self.fields:
                    setattr(existing, name, self._stored_value(item, name))
            session.flush()
            if existing is not None:
                item.id = existing.id
        get_logger().info("created %s: %r", self.label, item)
        return item

    def batch_add(self, items: Iterable[CatalogItem]) -> list[CatalogItem]:
        """Add each item in turn, skipping failures; return the items stored."""
        stored = []
        log = get_logger()
        for index, item in enumerate(items, start=1):
            try:
                self.add(item)
            except SQLAlchemyError as exc:
                log.error("batch create #%d failed: %s", index, exc)
                continue
            log.debug("batch create #%d succeeded, %s: %s", index, self.label, item.name)
            stored.append(item)
        return stored

    def delete(self, id: int) -> int:
        """Delete the row with primary key ``id``; return the number of rows removed."""
        with self._reporting("delete"), session_scope() as session:
            count = session.execute(sa_delete(self.model).where(self.model.id == id)).rowcount
        get_logger().info("deleted %s: %s", self.label, id)
        return count

    def batch_delete(self, ids: Iterable[int]) -> int:
        """Delete every row whose primary key is in ``ids``; return the number removed."""
        ids = list(ids)
        if not ids:
            return 0
        with self._reporting("batch delete"), session_scope() as session:
            count = session.execute(
                sa_delete(self.model).where(self.model.id.in_(ids))
            ).rowcount
        get_logger().debug("batch deleted %s: %s", self.label, ids)
        return count

    def update(self, name_id: int, updates: Mapping[str, Any]) -> int:
        """Set the updatable columns given in ``updates`` on the row with ``name_id``.

        Keys match column names case-insensitively; other keys are ignored.
        Zero values are written too. Returns the number of rows changed.
        """
        values = self._pick(updates)
        if not values:
            get_logger().debug("nothing to update for %s %s", self.label, name_id)
            return 0
        with self._reporting("update"), session_scope() as session:
            count = session.execute(
                sa_update(self.model).where(self.model.name_id == name_id).values(**values)
            ).rowcount
        get_logger().info("updated %s: %s", self.label, name_id)
        return count

    def batch_update(self, updates: Mapping[int, Mapping[str, Any]]) -> int:
        """Apply ``update`` for each name id, skipping failures; return rows changed in total."""
        total = 0
        log = get_logger()
        for name_id, change in updates.items():
            try:
                total += self.update(name_id, change)
            except SQLAlchemyError as exc:
                log.error("updating %s %s failed: %s", self.label, name_id, exc)
                continue
            log.debug("updating %s %s succeeded", self.label, name_id)
        return total

    def get(self, id: int) -> CatalogItem | None:
        """Return the row with primary key ``id``, or None if there is none."""
        with self._reporting("query"), session_scope() as session:
            item = session.get(self.model, id)
        if item is None:
            get_logger().error("query %s failed: record %s not found", self.label, id)
            return None
        get_logger().info("queried %s: %r", self.label, item)
        return item

    def batch_get(self, ids: Iterable[int]) -> list[CatalogItem]:
        """Return the rows whose primary keys are in ``ids``, ordered by id."""
        ids = list(ids)
        if not ids:
            return []
        with self._reporting("batch query"), session_scope() as session:
            items = list(
                session.scalars(
                    select(self.model).where(self.model.id.in_(ids)).order_by(self.model.id)
                )
            )
        get_logger().info("batch query found %d %s records", len(items), self.label)
        return items


_DEFAULT_WEBSITES = ((0, "待分类", "未知"), (1, "j88d", "www.j88d.com"))
_DEFAULT_CATEGORIES = ((0, "待分类"), (1, "普通漫画"), (2, "色漫"))
_DEFAULT_COUNTRIES = ((0, "待分类"), (1, "中国"), (2, "韩国"), (3, "欧美"), (4, "日本"))
_DEFAULT_TYPES = (
    (0, "待分类"),
    (1, "韩漫"),
    (2, "日漫"),
    (3, "真人漫画"),
    (4, "3D漫画"),
    (5, "欧美漫画"),
    (6, "同性"),
)


def insert_default_data() -> None:
    """Store the built-in websites, categories, countries and top-level types."""
    CatalogRepository(Website).batch_add(
        Website(name_id=name_id, name=name, url=url, need_proxy=0)
        for name_id, name, url in _DEFAULT_WEBSITES
    )
    CatalogRepository(Category).batch_add(
        Category(name_id=name_id, name=name) for name_id, name in _DEFAULT_CATEGORIES
    )
    CatalogRepository(Country).batch_add(
        Country(name_id=name_id, name=name) for name_id, name in _DEFAULT_COUNTRIES
    )
    CatalogRepository(BookType).batch_add(
        BookType(name_id=name_id, name=name, level=1, parent=0)
        for name_id, name in _DEFAULT_TYPES
    )