"""
Database helpers: duplicate-tolerant inserts and row locking that degrade per dialect.
"""

from sqlalchemy import Table
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pacer.errors import StoreContention


def insert_row(db: Session, table: Table, row: dict) -> None:
    """Insert one row inside a savepoint. A unique-key collision raises StoreContention."""
    try:
        with db.begin_nested():
            db.execute(table.insert().values(**row))
    except IntegrityError as e:
        raise StoreContention(f"duplicate key on {table.name}") from e


def insert_ignore(db: Session, table: Table, rows: list[dict], conflict_cols: list[str]) -> int:
    """
    Insert rows, skipping any that collide with an existing unique key.
    Returns the number of rows actually inserted. Does not commit.

    SQLite and PostgreSQL use INSERT ... ON CONFLICT DO NOTHING, so concurrent
    writers are arbitrated by the unique constraint itself. Other dialects fall
    back to one savepoint per row.
    """
    if not rows:
        return 0

    dialect = db.get_bind().dialect.name
    if dialect in ("sqlite", "postgresql"):
        if dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            from sqlalchemy.dialects.postgresql import insert
        stmt = insert(table).values(rows).on_conflict_do_nothing(index_elements=conflict_cols)
        result = db.execute(stmt)
        return max(result.rowcount or 0, 0)

    inserted = 0
    for row in rows:
        try:
            insert_row(db, table, row)
            inserted += 1
        except StoreContention:
            continue
    return inserted


def lock_for_update(db: Session, stmt):
    """Add FOR UPDATE where the backend honours it (SQLite serializes writers already)."""
    if db.get_bind().dialect.name == "sqlite":
        return stmt
    return stmt.with_for_update()
