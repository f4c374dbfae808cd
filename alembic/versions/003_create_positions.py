"""003: create positions table

Revision ID: 003
Revises: 002
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE positions (
            user_id     VARCHAR(64)     NOT NULL REFERENCES accounts (user_id),
            market_id   VARCHAR(64)     NOT NULL REFERENCES markets (id),
            side        VARCHAR(3)      NOT NULL,
            count       NUMERIC(20, 6)  NOT NULL DEFAULT 0,
            cost_basis  NUMERIC(20, 6)  NOT NULL DEFAULT 0,
            created_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at  TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT pk_positions              PRIMARY KEY (user_id, market_id, side),
            CONSTRAINT ck_positions_side         CHECK (side IN ('YES', 'NO')),
            CONSTRAINT ck_positions_count_gte_0  CHECK (count >= 0),
            CONSTRAINT ck_positions_cost_gte_0   CHECK (cost_basis >= 0)
        );
    """)
    op.execute("CREATE INDEX idx_positions_market ON positions (market_id);")
    op.execute("""
        CREATE TRIGGER trg_positions_updated_at
            BEFORE UPDATE ON positions
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE positions IS 'Shares held per user x market x side, with running cost basis';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS positions CASCADE;")
