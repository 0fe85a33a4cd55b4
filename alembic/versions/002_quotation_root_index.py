"""One root quotation per party

Revision ID: 002_quotation_root
Revises: 001_initial
Create Date: 2026-10-19

Partial unique index on quotations(party_id) WHERE version = 1, so two
concurrent "first quotation" requests cannot both become version 1.
PostgreSQL only; other dialects skip it.
"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "002_quotation_root"
down_revision: Union[str, None] = "001_initial"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    if op.get_bind().dialect.name != "postgresql":
        return
    op.create_index(
        "uq_quotations_party_root",
        "quotations",
        ["party_id"],
        unique=True,
        postgresql_where=sa.text("version = 1"),
        if_not_exists=True,
    )


def downgrade() -> None:
    if op.get_bind().dialect.name != "postgresql":
        return
    op.drop_index("uq_quotations_party_root", table_name="quotations", if_exists=True)
