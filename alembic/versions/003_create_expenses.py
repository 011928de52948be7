"""003: create expenses table

Revision ID: 003
Revises: 002
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE expenses (
            id                UUID           PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id           UUID           NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            category_id       UUID           NOT NULL REFERENCES categories(id) ON DELETE RESTRICT,
            amount            BIGINT         NOT NULL,
            currency          CHAR(3)        NOT NULL DEFAULT 'USD',
            description       VARCHAR(500)   NOT NULL,
            date              DATE           NOT NULL,
            payment_method    VARCHAR(20)    NOT NULL DEFAULT 'cash',
            tags              JSON           NOT NULL DEFAULT '[]',
            notes             VARCHAR(1000),
            is_recurring      BOOLEAN        NOT NULL DEFAULT FALSE,
            recurring_period  VARCHAR(10),
            created_at        TIMESTAMPTZ    NOT NULL DEFAULT NOW(),
            updated_at        TIMESTAMPTZ    NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_expenses_amount CHECK (amount >= 0),
            CONSTRAINT ck_expenses_payment_method CHECK (payment_method IN (
                'cash', 'credit_card', 'debit_card', 'bank_transfer', 'digital_wallet', 'other'
            )),
            CONSTRAINT ck_expenses_recurring CHECK (
                (is_recurring AND recurring_period IN ('daily', 'weekly', 'monthly', 'yearly'))
                OR (NOT is_recurring AND recurring_period IS NULL)
            )
        );
    """)
    op.execute("CREATE INDEX idx_expenses_user_date ON expenses (user_id, date);")
    op.execute("CREATE INDEX idx_expenses_user_category ON expenses (user_id, category_id);")
    op.execute("""
        CREATE TRIGGER trg_expenses_updated_at
            BEFORE UPDATE ON expenses
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("COMMENT ON COLUMN expenses.amount IS 'Amount in cents';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS expenses CASCADE;")
