from __future__ import annotations

import json
import logging
import threading
from datetime import datetime
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, Type, TypeVar

from fastapi.encoders import jsonable_encoder
from sqlalchemy import Column, Integer, MetaData, String, Table, Text, create_engine, delete, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from .models import (
    AdminAccount,
    Category,
    ChatMessage,
    Document,
    KeywordRecord,
    Notification,
    Order,
    Product,
    ShippingMethod,
    ShippingZone,
    StoreSettings,
)

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Document)


class RepositoryError(RuntimeError):
    """Raised when the backing store cannot serve a request."""


class Repository(Generic[T]):
    """Storage interface shared by the in-memory and SQL backends.

    ``list()`` returns a snapshot in insertion order; records are never
    mutated in place, ``update()`` stores a new validated copy.
    """

    model: Type[T]

    def list(self) -> List[T]:
        raise NotImplementedError

    def get(self, item_id: str) -> Optional[T]:
        raise NotImplementedError

    def create(self, item: T) -> T:
        raise NotImplementedError

    def update(self, item_id: str, changes: Dict[str, Any]) -> Optional[T]:
        raise NotImplementedError

    def delete(self, item_id: str) -> bool:
        raise NotImplementedError

    def replace_all(self, items: Iterable[T]) -> None:
        raise NotImplementedError

    def count(self) -> int:
        return len(self.list())

    def find(self, predicate: Callable[[T], bool]) -> Optional[T]:
        for item in self.list():
            if predicate(item):
                return item
        return None

    def _merged(self, current: T, changes: Dict[str, Any]) -> T:
        # id and createdAt are owned by the repository
        data = jsonable_encoder(current)
        for key, value in changes.items():
            if key in {"id", "createdAt", "updatedAt"}:
                continue
            data[key] = value
        data["updatedAt"] = datetime.now()
        return self.model.parse_obj(data)


class InMemoryRepository(Repository[T]):
    def __init__(self, model: Type[T]) -> None:
        self.model = model
        self._items: Dict[str, T] = {}
        self._lock = threading.Lock()

    def list(self) -> List[T]:
        with self._lock:
            return list(self._items.values())

    def get(self, item_id: str) -> Optional[T]:
        with self._lock:
            return self._items.get(str(item_id))

    def create(self, item: T) -> T:
        with self._lock:
            if item.id in self._items:
                raise RepositoryError(f"{self.model.__name__} {item.id} already exists")
            self._items[item.id] = item
        return item

    def update(self, item_id: str, changes: Dict[str, Any]) -> Optional[T]:
        with self._lock:
            current = self._items.get(str(item_id))
            if current is None:
                return None
            updated = self._merged(current, changes)
            self._items[current.id] = updated
        return updated

    def delete(self, item_id: str) -> bool:
        with self._lock:
            return self._items.pop(str(item_id), None) is not None

    def replace_all(self, items: Iterable[T]) -> None:
        with self._lock:
            self._items = {it.id: it for it in items}


class SqlRepository(Repository[T]):
    """One table per collection; each row keeps the JSON document.

    Uses SQLAlchemy Core to stay lightweight. ``seq`` preserves insertion
    order across backends.
    """

    def __init__(self, engine: Engine, metadata: MetaData, name: str, model: Type[T]) -> None:
        self.model = model
        self.engine = engine
        self._lock = threading.Lock()
        self.table = Table(
            name,
            metadata,
            Column("seq", Integer, primary_key=True, autoincrement=True),
            Column("id", String(64), unique=True, nullable=False),
            Column("doc", Text, nullable=False),
        )

    def _load(self, doc: str) -> T:
        return self.model.parse_obj(json.loads(doc))

    def _dump(self, item: T) -> str:
        return json.dumps(jsonable_encoder(item), ensure_ascii=False)

    def list(self) -> List[T]:
        try:
            with self.engine.begin() as conn:
                rows = conn.execute(select(self.table.c.doc).order_by(self.table.c.seq)).fetchall()
        except SQLAlchemyError as e:
            logger.warning(f"DB list {self.table.name} failed: {e}")
            raise RepositoryError(str(e)) from e
        return [self._load(r[0]) for r in rows]

    def get(self, item_id: str) -> Optional[T]:
        try:
            with self.engine.begin() as conn:
                row = conn.execute(
                    select(self.table.c.doc).where(self.table.c.id == str(item_id))
                ).fetchone()
        except SQLAlchemyError as e:
            logger.warning(f"DB get {self.table.name} failed: {e}")
            raise RepositoryError(str(e)) from e
        return self._load(row[0]) if row else None

    def create(self, item: T) -> T:
        try:
            with self.engine.begin() as conn:
                conn.execute(insert(self.table).values(id=item.id, doc=self._dump(item)))
        except SQLAlchemyError as e:
            logger.warning(f"DB insert {self.table.name} failed: {e}")
            raise RepositoryError(str(e)) from e
        return item

    def update(self, item_id: str, changes: Dict[str, Any]) -> Optional[T]:
        # read and write in one transaction; the row lock covers other
        # processes, the local lock covers threads sharing one connection
        with self._lock:
            try:
                with self.engine.begin() as conn:
                    row = conn.execute(
                        select(self.table.c.doc).where(self.table.c.id == str(item_id)).with_for_update()
                    ).fetchone()
                    if row is None:
                        return None
                    current = self._load(row[0])
                    updated = self._merged(current, changes)
                    conn.execute(
                        update(self.table).where(self.table.c.id == current.id).values(doc=self._dump(updated))
                    )
            except SQLAlchemyError as e:
                logger.warning(f"DB update {self.table.name} failed: {e}")
                raise RepositoryError(str(e)) from e
        return updated

    def delete(self, item_id: str) -> bool:
        try:
            with self.engine.begin() as conn:
                rs = conn.execute(delete(self.table).where(self.table.c.id == str(item_id)))
        except SQLAlchemyError as e:
            logger.warning(f"DB delete {self.table.name} failed: {e}")
            raise RepositoryError(str(e)) from e
        return (rs.rowcount or 0) > 0

    def replace_all(self, items: Iterable[T]) -> None:
        rows = [{"id": it.id, "doc": self._dump(it)} for it in items]
        try:
            with self.engine.begin() as conn:
                conn.execute(delete(self.table))
                if rows:
                    conn.execute(insert(self.table), rows)
        except SQLAlchemyError as e:
            logger.warning(f"DB replace {self.table.name} failed: {e}")
            raise RepositoryError(str(e)) from e


COLLECTIONS: Dict[str, Type[Document]] = {
    "keywords": KeywordRecord,
    "categories": Category,
    "products": Product,
    "orders": Order,
    "chat_messages": ChatMessage,
    "shipping_methods": ShippingMethod,
    "shipping_zones": ShippingZone,
    "notifications": Notification,
    "settings": StoreSettings,
    "admins": AdminAccount,
}


class Stores:
    """Bundle of repositories handed to the route handlers."""

    def __init__(self, repos: Dict[str, Repository], backend: str) -> None:
        self.backend = backend
        self.keywords: Repository[KeywordRecord] = repos["keywords"]
        self.categories: Repository[Category] = repos["categories"]
        self.products: Repository[Product] = repos["products"]
        self.orders: Repository[Order] = repos["orders"]
        self.messages: Repository[ChatMessage] = repos["chat_messages"]
        self.shipping_methods: Repository[ShippingMethod] = repos["shipping_methods"]
        self.shipping_zones: Repository[ShippingZone] = repos["shipping_zones"]
        self.notifications: Repository[Notification] = repos["notifications"]
        self.settings: Repository[StoreSettings] = repos["settings"]
        self.admins: Repository[AdminAccount] = repos["admins"]

    def counts(self) -> Dict[str, int]:
        return {
            "keywords": self.keywords.count(),
            "categories": self.categories.count(),
            "products": self.products.count(),
            "orders": self.orders.count(),
            "chat_messages": self.messages.count(),
        }

    def store_settings(self) -> StoreSettings:
        return self.settings.get("store") or StoreSettings()


def normalize_db_url(url: Optional[str]) -> Optional[str]:
    # SQLAlchemy requires the "postgresql://" scheme (not legacy "postgres://")
    if url and url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://"):]
    return url


def memory_stores() -> Stores:
    return Stores({name: InMemoryRepository(model) for name, model in COLLECTIONS.items()}, backend="memory")


def sql_stores(db_url: str) -> Stores:
    """Connect and create tables. Failures propagate as RepositoryError."""
    url = normalize_db_url(db_url)
    try:
        if url in {"sqlite://", "sqlite:///:memory:"}:
            # a single shared connection, otherwise each checkout sees an empty database
            engine = create_engine(url, poolclass=StaticPool, connect_args={"check_same_thread": False})
        else:
            engine = create_engine(url, pool_pre_ping=True)
        metadata = MetaData()
        repos = {
            name: SqlRepository(engine, metadata, name, model)
            for name, model in COLLECTIONS.items()
        }
        metadata.create_all(engine)
    except SQLAlchemyError as e:
        logger.exception(f"DB init failed: {e}")
        raise RepositoryError(f"DB init failed: {e}") from e
    logger.info("DB initialized: %d collections ready", len(repos))
    return Stores(repos, backend="sql")


def build_stores(db_url: Optional[str]) -> Stores:
    if db_url:
        return sql_stores(db_url)
    return memory_stores()
