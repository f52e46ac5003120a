"""
catalog/store.py -- SQLAlchemy-backed persistence layer for products.

Uses SQLAlchemy Core (not ORM) so the dataclass in catalog/models.py remains
the authoritative domain representation.

Pattern: Repository + Data Mapper. ProductStore is the repository;
_row_to_product is the mapper. Route handlers never touch SQL directly.

Security: all queries use bound parameters. No f-strings in SQL.

Usage:
    store = ProductStore()
    product_id = store.create_product(Product(name="Widget", created_by="ann@x.com"))
    store.update_product(product_id, updated_by="ann@x.com", status="Published")
    store.soft_delete_product(product_id, deleted_by="ann@x.com")
    store.close()
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, Integer, MetaData, String, Table, Text, case, create_engine, event, func, select
from sqlalchemy.engine import Engine

from catalog.models import PRODUCT_STATUSES, Product
from core.config import get_settings

logger = logging.getLogger("productscms.catalog")

# Fields a caller may change through update_product().
_MUTABLE_FIELDS = {"name", "description", "status"}

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

metadata = MetaData()

_products = Table(
    "products",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(200), nullable=False),
    Column("description", Text),
    Column("status", String(20), nullable=False, server_default="Draft"),
    Column("created_by", String(255), nullable=False),
    Column("updated_by", String(255)),
    Column("created_at", String(32), nullable=False),
    Column("updated_at", String(32), nullable=False),
    Column("is_deleted", Integer, nullable=False, server_default="0"),
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _set_wal_mode(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode; set per-connection like auth/store.py."""
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class ProductStore:
    def __init__(self, db_url: Optional[str] = None) -> None:
        db_url = db_url or get_settings().database_url
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        self.engine: Engine = create_engine(db_url, connect_args=connect_args)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_wal_mode)
        metadata.create_all(self.engine)

    def create_product(self, product: Product) -> int:
        """Insert a new product and return its assigned database ID.

        Raises ValueError for an unknown status value.
        """
        if product.status not in PRODUCT_STATUSES:
            raise ValueError(f"Unknown product status {product.status!r}")
        now = _now_iso()
        with self.engine.connect() as conn:
            result = conn.execute(
                _products.insert().values(
                    name=product.name,
                    description=product.description,
                    status=product.status,
                    created_by=product.created_by,
                    updated_by=product.created_by,
                    created_at=now,
                    updated_at=now,
                    is_deleted=0,
                )
            )
            conn.commit()
            product_id = result.inserted_primary_key[0]
        logger.info("Product created product_id=%s by=%s", product_id, product.created_by)
        return product_id

    def get_product(self, product_id: int, include_deleted: bool = False) -> Optional[Product]:
        """Fetch a single product by ID. Soft-deleted products count as missing unless asked for."""
        stmt = _products.select().where(_products.c.id == product_id)
        if not include_deleted:
            stmt = stmt.where(_products.c.is_deleted == 0)
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        return _row_to_product(row) if row is not None else None

    def list_products(self, include_deleted: bool = False) -> list[Product]:
        """Return products newest first."""
        stmt = _products.select().order_by(_products.c.created_at.desc(), _products.c.id.desc())
        if not include_deleted:
            stmt = stmt.where(_products.c.is_deleted == 0)
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_product(r) for r in rows]

    def update_product(self, product_id: int, updated_by: str, **fields) -> bool:
        """Update mutable fields (name, description, status) on a live product.

        Returns True if a row was updated, False if product_id was not found
        or the product is soft-deleted. Unknown fields raise ValueError.
        """
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown product fields: {unknown!r}")
        if "status" in fields and fields["status"] not in PRODUCT_STATUSES:
            raise ValueError(f"Unknown product status {fields['status']!r}")
        with self.engine.connect() as conn:
            result = conn.execute(
                _products.update()
                .where((_products.c.id == product_id) & (_products.c.is_deleted == 0))
                .values(updated_by=updated_by, updated_at=_now_iso(), **fields)
            )
            conn.commit()
        return result.rowcount > 0

    def soft_delete_product(self, product_id: int, deleted_by: str) -> bool:
        """Mark a product deleted. Returns False if missing or already deleted."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _products.update()
                .where((_products.c.id == product_id) & (_products.c.is_deleted == 0))
                .values(is_deleted=1, updated_by=deleted_by, updated_at=_now_iso())
            )
            conn.commit()
        if result.rowcount > 0:
            logger.info("Product soft-deleted product_id=%s by=%s", product_id, deleted_by)
        return result.rowcount > 0

    def status_counts(self) -> dict[str, int]:
        """Return {total, draft, published, archived} over non-deleted products.

        Conditional aggregation: one SELECT, one COUNT(CASE ...) per status.
        """
        stmt = select(
            func.count(_products.c.id),
            *(func.count(case((_products.c.status == status, 1))) for status in PRODUCT_STATUSES),
        ).where(_products.c.is_deleted == 0)
        with self.engine.connect() as conn:
            row = conn.execute(stmt).fetchone()
        total, *per_status = row
        counts = {"total": total or 0}
        for status, count in zip(PRODUCT_STATUSES, per_status):
            counts[status.lower()] = count or 0
        return counts

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mapper (Data Mapper pattern)
# ---------------------------------------------------------------------------


def _row_to_product(row) -> Product:
    return Product(
        id=row.id,
        name=row.name,
        description=row.description,
        status=row.status,
        created_by=row.created_by,
        updated_by=row.updated_by,
        created_at=row.created_at,
        updated_at=row.updated_at,
        is_deleted=bool(row.is_deleted),
    )
