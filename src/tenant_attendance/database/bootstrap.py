from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List

from .connection import DatabaseConnection

logger = logging.getLogger(__name__)

SCHEMA_PATH = Path(__file__).resolve().parent / "schema.sql"


def iter_sql_statements(sql: str) -> Iterable[str]:
    # Splits on ';' outside of quotes and drops '--' comment lines.
    buf: List[str] = []
    quote = None
    for line in sql.splitlines():
        if quote is None and line.strip().startswith("--"):
            continue
        for ch in line:
            if quote:
                if ch == quote:
                    quote = None
            elif ch in ("'", '"', "`"):
                quote = ch
            elif ch == ";":
                statement = "".join(buf).strip()
                buf = []
                if statement:
                    yield statement
                continue
            buf.append(ch)
        buf.append("\n")

    tail = "".join(buf).strip()
    if tail:
        yield tail


def apply_schema(conn_factory: DatabaseConnection, *, schema_path: Path = SCHEMA_PATH) -> int:
    """Create the database and tables if missing. Returns the number of statements executed."""

    database = conn_factory.config.database
    conn = conn_factory.connect(with_database=False)
    try:
        cur = conn.cursor()
        try:
            cur.execute(f"CREATE DATABASE IF NOT EXISTS `{database}` CHARACTER SET utf8mb4")
            cur.execute(f"USE `{database}`")
            count = 0
            for statement in iter_sql_statements(schema_path.read_text(encoding="utf-8")):
                cur.execute(statement)
                count += 1
            conn.commit()
        finally:
            cur.close()
    finally:
        conn.close()

    logger.info("Schema ready for database %s (%d statements)", database, count)
    return count
