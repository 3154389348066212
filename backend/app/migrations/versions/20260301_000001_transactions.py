"""transactions table

Revision ID: 20260301_000001
Revises:
Create Date: 2026-03-01 10:00:00.000000
"""

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "20260301_000001"
down_revision = None
branch_labels = None
depends_on = None


def _is_postgres() -> bool:
    return op.get_bind().dialect.name == "postgresql"


def _has_role(role_name: str) -> bool:
    """Check if a PostgreSQL role exists (Supabase envs have authenticated)."""
    conn = op.get_bind()
    result = conn.execute(sa.text("SELECT 1 FROM pg_roles WHERE rolname = :r"), {"r": role_name}).scalar()
    return result is not None


def upgrade() -> None:
    postgres = _is_postgres()
    uuid_type = sa.dialects.postgresql.UUID(as_uuid=True) if postgres else sa.CHAR(36)

    op.create_table(
        "transactions",
        sa.Column(
            "id",
            uuid_type,
            primary_key=True,
            server_default=sa.text("gen_random_uuid()") if postgres else None,
        ),
        sa.Column("user_id", uuid_type, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("source_type", sa.String(16), nullable=False, server_default=sa.text("'receipt'")),
        sa.Column("image_path", sa.Text()),
        sa.Column("merchant", sa.Text()),
        sa.Column("txn_date", sa.String(10)),
        sa.Column("total_cents", sa.Integer()),
        sa.Column("currency", sa.Text(), server_default=sa.text("'CAD'")),
        sa.Column("category", sa.Text()),
        sa.Column("confidence", sa.Float()),
        sa.Column("notes", sa.Text()),
        sa.Column("ai_json", sa.dialects.postgresql.JSONB() if postgres else sa.JSON()),
        sa.CheckConstraint("source_type IN ('receipt', 'screenshot')", name="ck_transactions_source_type"),
        sa.CheckConstraint("total_cents IS NULL OR total_cents >= 0", name="ck_transactions_total_cents"),
        sa.CheckConstraint(
            "confidence IS NULL OR (confidence >= 0 AND confidence <= 1)",
            name="ck_transactions_confidence",
        ),
    )
    op.create_index("idx_transactions_user_created", "transactions", ["user_id", "created_at"])

    if not postgres or not _has_role("authenticated"):
        # Plain PostgreSQL or SQLite: no Supabase roles to scope.
        return

    # Direct PostgREST access is limited to the owner's rows.
    op.execute("ALTER TABLE public.transactions ENABLE ROW LEVEL SECURITY;")
    op.execute(
        """
        CREATE POLICY "transactions_owner_all" ON public.transactions
        FOR ALL
        TO authenticated
        USING (auth.uid() = user_id)
        WITH CHECK (auth.uid() = user_id);
        """
    )


def downgrade() -> None:
    if _is_postgres():
        op.execute('DROP POLICY IF EXISTS "transactions_owner_all" ON public.transactions;')
    op.drop_index("idx_transactions_user_created", table_name="transactions")
    op.drop_table("transactions")
