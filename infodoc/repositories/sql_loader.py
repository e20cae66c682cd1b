from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from infodoc.domain.errors import StoreOperationError

SQL_DIR = Path(__file__).with_name("sql")


@lru_cache(maxsize=None)
def load_sql(name: str) -> str:
    path = SQL_DIR / name
    if not path.is_file():
        raise StoreOperationError(f"unknown query file: {name}")
    return path.read_text(encoding="utf-8").strip()
