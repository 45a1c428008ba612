import logging
import sqlite3
import sys

from db import Database

logger = logging.getLogger(__name__)


def copy_database(src_path: str, dst_path: str) -> dict:
    """Copy every record from ``src_path`` into ``dst_path``.

    The destination schema is created or upgraded first. Ids are kept and
    existing destination rows with the same id are replaced. Returns the
    number of rows copied per table.
    """
    Database(dst_path)
    counts = {}
    src = sqlite3.connect(src_path)
    dst = sqlite3.connect(dst_path)
    try:
        dst.execute("PRAGMA foreign_keys=off;")
        for table, (_, columns) in Database._TABLE_DEFINITIONS.items():
            cur = src.execute(f"PRAGMA table_info({table});")
            src_cols = [r[1] for r in cur.fetchall()]
            if not src_cols:
                counts[table] = 0
                continue
            common = [c for c in columns if c in src_cols]
            cols = ", ".join(common)
            marks = ", ".join("?" for _ in common)
            rows = src.execute(f"SELECT {cols} FROM {table};").fetchall()
            dst.executemany(
                f"INSERT OR REPLACE INTO {table} ({cols}) VALUES ({marks});", rows
            )
            counts[table] = len(rows)
        dst.commit()
    except Exception:
        dst.rollback()
        raise
    finally:
        src.close()
        dst.close()
    logger.info("copied %s from %s to %s", counts, src_path, dst_path)
    return counts


if __name__ == '__main__':
    if len(sys.argv) != 3:
        print("usage: migrate.py SRC DST")
        sys.exit(1)
    copy_database(sys.argv[1], sys.argv[2])
