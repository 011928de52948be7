"""002: create categories table

Revision ID: 002
Revises: 001
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE categories (
            id           UUID          PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id      UUID          NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            name         VARCHAR(50)   NOT NULL,
            color        VARCHAR(7),
            icon         VARCHAR(50),
            budget       BIGINT,
            description  VARCHAR(200),
            is_active    BOOLEAN       NOT NULL DEFAULT TRUE,
            created_at   TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            updated_at   TIMESTAMPTZ   NOT NULL DEFAULT NOW(),
            CONSTRAINT ck_categories_budget CHECK (budget IS NULL OR budget >= 0),
            CONSTRAINT ck_categories_color  CHECK (color IS NULL OR color ~ '^#([0-9a-fA-F]{3}){1,2}$')
        );
    """)
    op.execute("CREATE INDEX idx_categories_user_active ON categories (user_id, is_active);")
    # Backs the service-level name check against concurrent creates
    op.execute("""
        CREATE UNIQUE INDEX uq_categories_user_active_name
            ON categories (user_id, LOWER(name))
            WHERE is_active;
    """)
    op.execute("""
        CREATE TRIGGER trg_categories_updated_at
            BEFORE UPDATE ON categories
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("COMMENT ON COLUMN categories.budget IS 'Budget in cents, NULL = none';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS categories CASCADE;")
