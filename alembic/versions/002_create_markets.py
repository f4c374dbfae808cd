"""002: create markets table

Revision ID: 002
Revises: 001
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE markets (
            id              VARCHAR(64)     PRIMARY KEY,
            question        TEXT            NOT NULL,
            description     TEXT,
            group_topic     VARCHAR(128),
            pool_yes        NUMERIC(20, 6)  NOT NULL,
            pool_no         NUMERIC(20, 6)  NOT NULL,
            seed_liquidity  NUMERIC(20, 6)  NOT NULL,
            closed          BOOLEAN         NOT NULL DEFAULT FALSE,
            outcome         VARCHAR(10)     NOT NULL DEFAULT 'PENDING',
            resolved_at     TIMESTAMPTZ,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_markets_question_not_blank CHECK (length(trim(question)) > 0),
            CONSTRAINT ck_markets_pool_yes_gt_0      CHECK (pool_yes > 0),
            CONSTRAINT ck_markets_pool_no_gt_0       CHECK (pool_no > 0),
            CONSTRAINT ck_markets_seed_gt_0          CHECK (seed_liquidity > 0),
            CONSTRAINT ck_markets_outcome            CHECK (outcome IN ('PENDING', 'YES', 'NO')),
            CONSTRAINT ck_markets_closed_outcome     CHECK (
                (closed = FALSE AND outcome = 'PENDING' AND resolved_at IS NULL)
                OR (closed = TRUE AND outcome IN ('YES', 'NO') AND resolved_at IS NOT NULL)
            )
        );
    """)
    op.execute("CREATE INDEX idx_markets_open_created ON markets (closed, created_at DESC, id DESC);")
    op.execute("CREATE INDEX idx_markets_resolved ON markets (resolved_at DESC, id DESC) WHERE closed;")
    op.execute("CREATE INDEX idx_markets_group_topic ON markets (group_topic) WHERE group_topic IS NOT NULL;")
    op.execute("""
        CREATE TRIGGER trg_markets_updated_at
            BEFORE UPDATE ON markets
            FOR EACH ROW EXECUTE FUNCTION fn_update_timestamp();
    """)
    op.execute("COMMENT ON TABLE markets IS 'Binary markets priced by a constant-product AMM over (pool_yes, pool_no)';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS markets CASCADE;")
