"""004: create transaction_records table (append-only)

Revision ID: 004
Revises: 003
Create Date: 2026-10-16
"""
from typing import Sequence, Union
from alembic import op

revision: str = "004"
down_revision: Union[str, None] = "003"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE transaction_records (
            id              BIGSERIAL       PRIMARY KEY,
            user_id         VARCHAR(64)     NOT NULL REFERENCES accounts (user_id),
            market_id       VARCHAR(64)     NOT NULL REFERENCES markets (id),
            side            VARCHAR(3)      NOT NULL,
            action          VARCHAR(10)     NOT NULL,
            shares_amount   NUMERIC(20, 6)  NOT NULL,
            cash_amount     NUMERIC(20, 6)  NOT NULL,
            fee_amount      NUMERIC(20, 6)  NOT NULL DEFAULT 0,
            price           NUMERIC(20, 6)  NOT NULL,
            created_at      TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_records_side          CHECK (side IN ('YES', 'NO')),
            CONSTRAINT ck_records_action        CHECK (action IN ('BUY', 'SELL', 'PAYOUT')),
            CONSTRAINT ck_records_shares_gte_0  CHECK (shares_amount >= 0),
            CONSTRAINT ck_records_cash_gte_0    CHECK (cash_amount >= 0),
            CONSTRAINT ck_records_fee_gte_0     CHECK (fee_amount >= 0)
        );
    """)
    # Daily quota count: user's BUY/SELL since midnight UTC
    op.execute("CREATE INDEX idx_records_user_created ON transaction_records (user_id, created_at);")
    op.execute("CREATE INDEX idx_records_market ON transaction_records (market_id, id);")
    op.execute("COMMENT ON TABLE transaction_records IS 'Append-only trade and payout log; rows are never updated';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS transaction_records CASCADE;")
