"""
Database abstraction for SQL backends and an in-memory test implementation.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Dict, Optional, Protocol

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    create_engine,
    event,
    func,
    select,
)
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY_ICON = "📁"

# (name, description, icon, order_index)
DEFAULT_CATEGORIES = (
    ("Social Media", "My social network profiles", "📱", 1),
    ("Affiliations", "My affiliate links", "🔗", 2),
    ("Print-on-Demand Creations", "My Print-on-Demand products", "🎨", 3),
)


class DbClient(Protocol):
    """Interface for database access."""

    def initialize(self) -> bool:
        ...

    def close(self) -> None:
        ...

    def list_categories(self) -> list["CategoryRecord"]:
        ...

    def get_category(self, category_id: int) -> Optional["CategoryRecord"]:
        ...

    def create_category(
        self, name: str, description: Optional[str], icon: Optional[str]
    ) -> "CategoryRecord":
        ...

    def update_category(
        self, category_id: int, changes: dict
    ) -> Optional["CategoryRecord"]:
        ...

    def delete_category(self, category_id: int) -> bool:
        ...

    def list_links(
        self, category_id: int, *, active_only: bool = True
    ) -> list["LinkRecord"]:
        ...

    def get_link(self, link_id: int) -> Optional["LinkRecord"]:
        ...

    def create_link(
        self,
        category_id: int,
        title: str,
        url: str,
        description: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> "LinkRecord":
        ...

    def update_link(self, link_id: int, changes: dict) -> Optional["LinkRecord"]:
        ...

    def delete_link(self, link_id: int) -> bool:
        ...


@dataclass
class CategoryRecord:
    id: int
    name: str
    description: Optional[str] = None
    icon: Optional[str] = None
    order_index: int = 0
    created_at: Optional[datetime] = None

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class LinkRecord:
    id: int
    category_id: int
    title: str
    url: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    order_index: int = 0
    active: bool = True
    created_at: Optional[datetime] = None

    def as_dict(self) -> dict:
        return asdict(self)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _sort_key(record) -> tuple[int, int]:
    return (record.order_index, record.id)


class InMemoryDbClient:
    """Simple in-memory database for development and tests."""

    def __init__(self):
        self.categories: Dict[int, CategoryRecord] = {}
        self.links: Dict[int, LinkRecord] = {}
        self._next_category_id = 1
        self._next_link_id = 1
        self._lock = threading.Lock()

    def initialize(self) -> bool:
        with self._lock:
            if self.categories:
                return False
            for name, description, icon, order_index in DEFAULT_CATEGORIES:
                self._insert_category(name, description, icon, order_index)
        logger.info("Seeded %d default categories", len(DEFAULT_CATEGORIES))
        return True

    def close(self) -> None:
        pass

    def reset(self) -> None:
        """Clear all stored data (useful in tests)."""
        with self._lock:
            self.categories.clear()
            self.links.clear()
            self._next_category_id = 1
            self._next_link_id = 1

    def _insert_category(
        self,
        name: str,
        description: Optional[str],
        icon: Optional[str],
        order_index: int,
    ) -> CategoryRecord:
        if any(c.name == name for c in self.categories.values()):
            raise ValueError(f"UNIQUE constraint failed: categories.name ({name})")
        record = CategoryRecord(
            id=self._next_category_id,
            name=name,
            description=description,
            icon=icon,
            order_index=order_index,
            created_at=_utcnow(),
        )
        self.categories[record.id] = record
        self._next_category_id += 1
        return record

    def list_categories(self) -> list[CategoryRecord]:
        with self._lock:
            return sorted(self.categories.values(), key=_sort_key)

    def get_category(self, category_id: int) -> Optional[CategoryRecord]:
        with self._lock:
            return self.categories.get(category_id)

    def create_category(
        self, name: str, description: Optional[str], icon: Optional[str]
    ) -> CategoryRecord:
        with self._lock:
            next_order = (
                max((c.order_index for c in self.categories.values()), default=0) + 1
            )
            return self._insert_category(name, description, icon, next_order)

    def update_category(
        self, category_id: int, changes: dict
    ) -> Optional[CategoryRecord]:
        with self._lock:
            category = self.categories.get(category_id)
            if not category:
                return None
            new_name = changes.get("name")
            if new_name and any(
                c.name == new_name and c.id != category_id
                for c in self.categories.values()
            ):
                raise ValueError(
                    f"UNIQUE constraint failed: categories.name ({new_name})"
                )
            for key, value in changes.items():
                setattr(category, key, value)
            return category

    def delete_category(self, category_id: int) -> bool:
        with self._lock:
            if self.categories.pop(category_id, None) is None:
                return False
            # Mirrors ON DELETE CASCADE.
            for link_id in [
                l.id for l in self.links.values() if l.category_id == category_id
            ]:
                del self.links[link_id]
            return True

    def list_links(
        self, category_id: int, *, active_only: bool = True
    ) -> list[LinkRecord]:
        with self._lock:
            links = [
                l
                for l in self.links.values()
                if l.category_id == category_id and (l.active or not active_only)
            ]
        return sorted(links, key=_sort_key)

    def get_link(self, link_id: int) -> Optional[LinkRecord]:
        with self._lock:
            return self.links.get(link_id)

    def create_link(
        self,
        category_id: int,
        title: str,
        url: str,
        description: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> LinkRecord:
        with self._lock:
            if category_id not in self.categories:
                raise ValueError(
                    f"FOREIGN KEY constraint failed: categories.id ({category_id})"
                )
            next_order = (
                max(
                    (
                        l.order_index
                        for l in self.links.values()
                        if l.category_id == category_id
                    ),
                    default=0,
                )
                + 1
            )
            record = LinkRecord(
                id=self._next_link_id,
                category_id=category_id,
                title=title,
                url=url,
                description=description,
                image_url=image_url,
                order_index=next_order,
                active=True,
                created_at=_utcnow(),
            )
            self.links[record.id] = record
            self._next_link_id += 1
            return record

    def update_link(self, link_id: int, changes: dict) -> Optional[LinkRecord]:
        with self._lock:
            link = self.links.get(link_id)
            if not link:
                return None
            for key, value in changes.items():
                setattr(link, key, value)
            return link

    def delete_link(self, link_id: int) -> bool:
        with self._lock:
            return self.links.pop(link_id, None) is not None


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # SQLite hands back CURRENT_TIMESTAMP (UTC) without an offset.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _enable_sqlite_wal(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


class SqlDbClient:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy URL: a local
    SQLite file, in-memory SQLite for tests, or a remote Postgres database.
    """

    def __init__(self, database_url: str):
        if not database_url:
            raise ValueError("DATABASE_URL is required for SqlDbClient")
        url = make_url(database_url)
        engine_kwargs: dict = {"future": True, "pool_pre_ping": True}
        is_sqlite = url.get_backend_name() == "sqlite"
        in_memory = is_sqlite and url.database in (None, "", ":memory:")
        if is_sqlite:
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if in_memory:
                # One shared connection, otherwise every pooled connection
                # would see its own empty database.
                engine_kwargs["poolclass"] = StaticPool
        else:
            engine_kwargs["pool_recycle"] = 1800
        self.engine = create_engine(url, **engine_kwargs)
        if is_sqlite:
            event.listen(self.engine, "connect", _enable_sqlite_foreign_keys)
            if not in_memory:
                event.listen(self.engine, "connect", _enable_sqlite_wal)
        self.Session = sessionmaker(
            bind=self.engine, class_=Session, expire_on_commit=False, future=True
        )

    def initialize(self) -> bool:
        Base.metadata.create_all(self.engine)
        with self.Session() as session:
            count = session.scalar(select(func.count()).select_from(CategoryRow))
            if count:
                return False
            for name, description, icon, order_index in DEFAULT_CATEGORIES:
                session.add(
                    CategoryRow(
                        name=name,
                        description=description,
                        icon=icon,
                        order_index=order_index,
                    )
                )
            session.commit()
        logger.info("Seeded %d default categories", len(DEFAULT_CATEGORIES))
        return True

    def close(self) -> None:
        self.engine.dispose()

    def _to_category_record(self, row: "CategoryRow") -> CategoryRecord:
        return CategoryRecord(
            id=row.id,
            name=row.name,
            description=row.description,
            icon=row.icon,
            order_index=row.order_index,
            created_at=_as_utc(row.created_at),
        )

    def _to_link_record(self, row: "LinkRow") -> LinkRecord:
        return LinkRecord(
            id=row.id,
            category_id=row.category_id,
            title=row.title,
            url=row.url,
            description=row.description,
            image_url=row.image_url,
            order_index=row.order_index,
            active=bool(row.active),
            created_at=_as_utc(row.created_at),
        )

    def list_categories(self) -> list[CategoryRecord]:
        with self.Session() as session:
            stmt = select(CategoryRow).order_by(
                CategoryRow.order_index.asc(), CategoryRow.id.asc()
            )
            return [
                self._to_category_record(row) for row in session.scalars(stmt)
            ]

    def get_category(self, category_id: int) -> Optional[CategoryRecord]:
        with self.Session() as session:
            row = session.get(CategoryRow, category_id)
            return self._to_category_record(row) if row else None

    def create_category(
        self, name: str, description: Optional[str], icon: Optional[str]
    ) -> CategoryRecord:
        # Computed inside the INSERT so the read of max() and the write
        # happen in one statement.
        next_order = (
            select(func.coalesce(func.max(CategoryRow.order_index), 0) + 1)
            .correlate(None)
            .scalar_subquery()
        )
        with self.Session() as session:
            row = CategoryRow(
                name=name,
                description=description,
                icon=icon,
                order_index=next_order,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_category_record(row)

    def update_category(
        self, category_id: int, changes: dict
    ) -> Optional[CategoryRecord]:
        with self.Session() as session:
            row = session.get(CategoryRow, category_id)
            if not row:
                return None
            for key, value in changes.items():
                setattr(row, key, value)
            session.commit()
            return self._to_category_record(row)

    def delete_category(self, category_id: int) -> bool:
        with self.Session() as session:
            row = session.get(CategoryRow, category_id)
            if not row:
                return False
            # Links go with it through ON DELETE CASCADE.
            session.delete(row)
            session.commit()
            return True

    def list_links(
        self, category_id: int, *, active_only: bool = True
    ) -> list[LinkRecord]:
        with self.Session() as session:
            stmt = select(LinkRow).where(LinkRow.category_id == category_id)
            if active_only:
                stmt = stmt.where(LinkRow.active.is_(True))
            stmt = stmt.order_by(LinkRow.order_index.asc(), LinkRow.id.asc())
            return [self._to_link_record(row) for row in session.scalars(stmt)]

    def get_link(self, link_id: int) -> Optional[LinkRecord]:
        with self.Session() as session:
            row = session.get(LinkRow, link_id)
            return self._to_link_record(row) if row else None

    def create_link(
        self,
        category_id: int,
        title: str,
        url: str,
        description: Optional[str] = None,
        image_url: Optional[str] = None,
    ) -> LinkRecord:
        next_order = (
            select(func.coalesce(func.max(LinkRow.order_index), 0) + 1)
            .where(LinkRow.category_id == category_id)
            .correlate(None)
            .scalar_subquery()
        )
        with self.Session() as session:
            row = LinkRow(
                category_id=category_id,
                title=title,
                url=url,
                description=description,
                image_url=image_url,
                order_index=next_order,
                active=True,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return self._to_link_record(row)

    def update_link(self, link_id: int, changes: dict) -> Optional[LinkRecord]:
        with self.Session() as session:
            row = session.get(LinkRow, link_id)
            if not row:
                return None
            for key, value in changes.items():
                setattr(row, key, value)
            session.commit()
            return self._to_link_record(row)

    def delete_link(self, link_id: int) -> bool:
        with self.Session() as session:
            row = session.get(LinkRow, link_id)
            if not row:
                return False
            session.delete(row)
            session.commit()
            return True


Base = declarative_base()


class CategoryRow(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String, nullable=False, unique=True)
    description = Column(String, nullable=True)
    icon = Column(String, nullable=True)
    order_index = Column(Integer, nullable=False, default=0)
    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )


class LinkRow(Base):
    __tablename__ = "links"

    id = Column(Integer, primary_key=True, autoincrement=True)
    category_id = Column(
        Integer,
        ForeignKey("categories.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    title = Column(String, nullable=False)
    url = Column(String, nullable=False)
    description = Column(String, nullable=True)
    image_url = Column(String, nullable=True)
    order_index = Column(Integer, nullable=False, default=0)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
