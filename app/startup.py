"""
startup.py — Boot-time schema sync (idempotent)

Tables come from the ORM models via create_all(checkfirst=True). On
PostgreSQL we additionally enforce the lineage rules the ORM can't express:
a partial unique index allowing one root quotation per party, and NOT VALID
CHECK constraints on versions, statuses, totals and catalog prices.

Called by: main.py lifespan
Depends on: database.py (engine), models (Base)
"""

import logging
import os

from sqlalchemy import text as sqltext

from .database import engine

log = logging.getLogger("quotedesk.startup")

ROOT_INDEX_DDL = (
    "CREATE UNIQUE INDEX IF NOT EXISTS uq_quotations_party_root "
    "ON quotations (party_id) WHERE version = 1"
)

# (table, constraint name, predicate)
CHECK_CONSTRAINTS = (
    ("quotations", "chk_quote_version", "version >= 1"),
    ("quotations", "chk_quote_status", "status IN ('draft','sent','lost','sold')"),
    ("quotations", "chk_quote_root_original", "version > 1 OR original_quote_id IS NULL"),
    ("quotations", "chk_quote_totals", "total_amount >= 0 AND total_purchase >= 0 AND total_tax >= 0"),
    ("models", "chk_model_prices", "purchase_price >= 0 AND sales_price >= 0"),
    ("models", "chk_model_gst", "gst_rate BETWEEN 0 AND 100"),
)


def check_constraint_ddl(table: str, name: str, predicate: str) -> str:
    """Guarded ALTER so re-running on every boot is a no-op."""
    return (
        "DO $$ BEGIN "
        f"IF NOT EXISTS (SELECT 1 FROM pg_constraint WHERE conname = '{name}') THEN "
        f"ALTER TABLE {table} ADD CONSTRAINT {name} CHECK ({predicate}) NOT VALID; "
        "END IF; END $$;"
    )


def postgres_ddl() -> list[str]:
    return [ROOT_INDEX_DDL] + [check_constraint_ddl(*c) for c in CHECK_CONSTRAINTS]


def run_startup_migrations() -> None:
    if os.environ.get("TESTING"):
        log.info("TESTING mode — skipping startup migrations")
        return

    from .models import Base

    Base.metadata.create_all(bind=engine, checkfirst=True)
    log.info("Schema sync complete")

    if engine.dialect.name != "postgresql":
        log.info("No lineage DDL for dialect %s", engine.dialect.name)
        return

    applied = 0
    with engine.connect() as conn:
        for stmt in postgres_ddl():
            applied += _exec(conn, stmt)
    log.info("Lineage DDL applied (%d/%d statements)", applied, len(postgres_ddl()))


def _exec(conn, stmt: str) -> int:
    """Run one DDL statement; a failure is logged and rolled back, not raised."""
    try:
        conn.execute(sqltext(stmt))
        conn.commit()
        return 1
    except Exception as e:
        log.warning("DDL failed: %s", e)
        conn.rollback()
        return 0
