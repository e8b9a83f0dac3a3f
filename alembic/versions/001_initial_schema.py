"""Initial schema: users, api keys, CLI device codes.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from alembic import op


# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Returns NULL for system connections (app.user_id = '') so policies can bypass
    op.execute("""
        CREATE OR REPLACE FUNCTION get_app_user_id() RETURNS uuid AS $$
        DECLARE
            val text;
        BEGIN
            val := current_setting('app.user_id', true);
            IF val IS NULL OR val = '' THEN
                RETURN NULL;
            END IF;
            RETURN val::uuid;
        END;
        $$ LANGUAGE plpgsql STABLE;
    """)

    op.execute("""
        CREATE TABLE users (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            email TEXT UNIQUE NOT NULL,
            name TEXT,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)

    op.execute("ALTER TABLE users ENABLE ROW LEVEL SECURITY;")
    op.execute("ALTER TABLE users FORCE ROW LEVEL SECURITY;")
    op.execute("""
        CREATE POLICY users_all_own
        ON users
        FOR ALL
        USING (get_app_user_id() IS NULL OR id = get_app_user_id());
    """)

    op.execute("""
        CREATE TABLE api_keys (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            name TEXT NOT NULL,
            key_hash TEXT NOT NULL UNIQUE,
            key_prefix TEXT NOT NULL,
            last_used_at TIMESTAMPTZ,
            expires_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)

    op.execute("CREATE INDEX idx_api_keys_user ON api_keys(user_id);")

    # RLS policy: users can only see/delete their own keys
    op.execute("ALTER TABLE api_keys ENABLE ROW LEVEL SECURITY;")
    op.execute("ALTER TABLE api_keys FORCE ROW LEVEL SECURITY;")
    op.execute("""
        CREATE POLICY api_keys_all_own
        ON api_keys
        FOR ALL
        USING (get_app_user_id() IS NULL OR user_id = get_app_user_id());
    """)

    # Device codes are only touched through system connections; no RLS.
    # api_key holds the raw key until the retention job deletes the row.
    op.execute("""
        CREATE TABLE device_codes (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            device_code TEXT NOT NULL UNIQUE,
            user_code TEXT NOT NULL UNIQUE,
            status TEXT NOT NULL DEFAULT 'pending' CHECK (status IN ('pending', 'approved')),
            api_key TEXT,
            user_id UUID REFERENCES users(id) ON DELETE CASCADE,
            expires_at TIMESTAMPTZ NOT NULL,
            approved_at TIMESTAMPTZ,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CHECK ((status = 'approved') = (api_key IS NOT NULL))
        );
    """)

    op.execute("CREATE INDEX idx_device_codes_expires ON device_codes(expires_at);")


def downgrade():
    op.execute("DROP TABLE IF EXISTS device_codes CASCADE;")
    op.execute("DROP TABLE IF EXISTS api_keys CASCADE;")
    op.execute("DROP TABLE IF EXISTS users CASCADE;")
    op.execute("DROP FUNCTION IF EXISTS get_app_user_id();")
