"""Bring the database schema to Alembic head.

Databases bootstrapped by `init_db()` (`create_all`) have the tables but no
`alembic_version` row. Those are stamped at the baseline revision first, after
checking the baseline schema is really there, and then upgraded normally.

Run as a one-off deploy job: `python -m taskcadence.database.migrate_runner`.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import List, Optional, Tuple

from alembic import command
from alembic.config import Config
from sqlalchemy import inspect

from taskcadence.database.database import DATABASE_URL, build_engine

logger = logging.getLogger(__name__)

BASELINE_REVISION = "4e1a7c2b9d30"

# (table, column or None) the baseline migration creates.
BASELINE_SCHEMA: List[Tuple[str, Optional[str]]] = [
    ("tasks", None),
    ("recurrence_rules", None),
    ("task_instances", None),
    ("tasks", "due_date"),
    ("tasks", "deleted_at"),
    ("recurrence_rules", "end_type"),
    ("recurrence_rules", "materialized_count"),
    ("task_instances", "occurrence_at"),
]


def _alembic_cfg() -> Config:
    cfg = Config(os.getenv("ALEMBIC_INI", "alembic.ini"))
    cfg.set_main_option("sqlalchemy.url", DATABASE_URL)
    return cfg


def missing_requirements(engine) -> List[str]:
    """List the baseline tables/columns the database lacks."""
    inspector = inspect(engine)
    tables = set(inspector.get_table_names())
    missing: List[str] = []
    for table, column in BASELINE_SCHEMA:
        if column is None:
            if table not in tables:
                missing.append(f"missing table: {table}")
            continue
        columns = {c["name"] for c in inspector.get_columns(table)} if table in tables else set()
        if column not in columns:
            missing.append(f"missing column: {table}.{column}")
    return missing


def is_unversioned(engine) -> bool:
    """True when application tables exist but Alembic has never recorded a revision."""
    tables = set(inspect(engine).get_table_names())
    return "tasks" in tables and "alembic_version" not in tables


def main() -> int:
    engine = build_engine(DATABASE_URL)
    cfg = _alembic_cfg()
    try:
        if is_unversioned(engine):
            missing = missing_requirements(engine)
            if missing:
                raise RuntimeError(
                    "Unversioned schema does not match the baseline; refusing to stamp. " + "; ".join(missing)
                )
            logger.warning(f"Schema created outside Alembic; stamping baseline {BASELINE_REVISION}")
            command.stamp(cfg, BASELINE_REVISION)
        command.upgrade(cfg, "head")
    finally:
        engine.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())
