"""001: create users table and the updated_at trigger function

Revision ID: 001
Revises:
Create Date: 2026-10-18
"""
from typing import Sequence, Union
from alembic import op

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.execute("""
        CREATE OR REPLACE FUNCTION fn_touch_updated_at()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = NOW();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    op.execute("""
        CREATE TABLE users (
            id                  UUID            PRIMARY KEY DEFAULT gen_random_uuid(),
            username            VARCHAR(30)     NOT NULL,
            email               VARCHAR(255)    NOT NULL,
            password_hash       VARCHAR(255)    NOT NULL,
            first_name          VARCHAR(50),
            last_name           VARCHAR(50),
            currency            CHAR(3)         NOT NULL DEFAULT 'USD',
            is_active           BOOLEAN         NOT NULL DEFAULT TRUE,
            last_login_at       TIMESTAMPTZ,
            refresh_token_hash  CHAR(64),
            created_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            updated_at          TIMESTAMPTZ     NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_users_username     UNIQUE (username),
            CONSTRAINT uq_users_email        UNIQUE (email),
            CONSTRAINT ck_users_username_len CHECK (LENGTH(username) BETWEEN 3 AND 30)
        );
    """)
    op.execute("""
        CREATE TRIGGER trg_users_updated_at
            BEFORE UPDATE ON users
            FOR EACH ROW EXECUTE FUNCTION fn_touch_updated_at();
    """)
    op.execute("COMMENT ON COLUMN users.refresh_token_hash IS 'SHA-256 of the live refresh token';")


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS fn_touch_updated_at();")
