"""Key-value store over a single SQL table.

The repositories only need `get`, `put`, `put_many` and a lazy prefix scan, so
that is the whole interface. Each `SqlKeyValueStore` is bound to one
namespace; two stores with different namespaces never see each other's keys.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Iterable, Iterator, Optional, Protocol

from dotenv import load_dotenv
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from errors import StorageFailure
from models import KVRecord

load_dotenv()

logger = logging.getLogger(__name__)

SCAN_PAGE_SIZE = int(os.getenv("SCAN_PAGE_SIZE", "500"))


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[dict[str, Any]]: ...

    def put(self, key: str, value: dict[str, Any]) -> None: ...

    def put_many(self, items: Iterable[tuple[str, dict[str, Any]]]) -> None: ...

    def list(self, prefix: str) -> Iterator[tuple[str, dict[str, Any]]]: ...


def _decode(key: str, raw: str) -> dict[str, Any]:
    try:
        return json.loads(raw)
    except json.JSONDecodeError as e:
        raise StorageFailure(f"Stored value at {key!r} is not valid JSON") from e


class SqlKeyValueStore:
    """SQLAlchemy-backed store scoped to one namespace.

    Args:
        session_factory (sessionmaker): Factory for short-lived sessions.
        namespace (str): Key space owned by this store instance.
        page_size (int): Rows fetched per round trip during prefix scans.
    """

    def __init__(self, session_factory: sessionmaker, namespace: str, page_size: int = SCAN_PAGE_SIZE):
        self.session_factory = session_factory
        self.namespace = namespace
        self.page_size = page_size

    def get(self, key: str) -> Optional[dict[str, Any]]:
        try:
            with self.session_factory() as db:
                row = db.get(KVRecord, (self.namespace, key))
                raw = row.value if row else None
        except SQLAlchemyError as e:
            raise StorageFailure(f"Read failed for {key!r}: {e}") from e
        return _decode(key, raw) if raw is not None else None

    def put(self, key: str, value: dict[str, Any]) -> None:
        self.put_many([(key, value)])

    def put_many(self, items: Iterable[tuple[str, dict[str, Any]]]) -> None:
        """Write several keys in one transaction; either all land or none do."""
        rows = [(k, json.dumps(v, separators=(",", ":"))) for k, v in items]
        db: Session = self.session_factory()
        try:
            for key, raw in rows:
                db.merge(KVRecord(namespace=self.namespace, key=key, value=raw))
            db.commit()
        except SQLAlchemyError as e:
            db.rollback()
            logger.error("kv_write_failed", extra={"namespace": self.namespace, "keys": [k for k, _ in rows]})
            raise StorageFailure(f"Write failed: {e}") from e
        finally:
            db.close()

    def list(self, prefix: str) -> Iterator[tuple[str, dict[str, Any]]]:
        """Yield every (key, value) whose key starts with `prefix`, in key order."""
        stmt = (
            select(KVRecord.key, KVRecord.value)
            .where(KVRecord.namespace == self.namespace, KVRecord.key.startswith(prefix, autoescape=True))
            .order_by(KVRecord.key)
            .execution_options(yield_per=self.page_size)
        )
        try:
            with self.session_factory() as db:
                for key, raw in db.execute(stmt):
                    # LIKE is case-insensitive on SQLite
                    if key.startswith(prefix):
                        yield key, _decode(key, raw)
        except SQLAlchemyError as e:
            raise StorageFailure(f"Scan failed for prefix {prefix!r}: {e}") from e
