"""
Migration: Add ChatNPT chat history and search index tables

This migration adds:
1. chat_history table for saved ChatNPT conversations
2. search_chunks table holding one embedding per context chunk

For manual migration on an existing PostgreSQL database:
    python migrations/002_search_index.py
"""

# SQL for PostgreSQL
UPGRADE_SQL = """
CREATE TABLE IF NOT EXISTS chat_history (
    id SERIAL PRIMARY KEY,
    organization_id INTEGER NOT NULL REFERENCES organizations(id),
    user_id INTEGER NOT NULL REFERENCES users(id),
    chat_id VARCHAR(64) UNIQUE NOT NULL,
    title VARCHAR(255) NOT NULL DEFAULT 'New Chat',
    messages JSON,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS ix_chat_history_user_id ON chat_history(user_id);

CREATE TABLE IF NOT EXISTS search_chunks (
    id SERIAL PRIMARY KEY,
    organization_id INTEGER NOT NULL REFERENCES organizations(id),
    chunk_key VARCHAR(255) NOT NULL,
    source_type VARCHAR(50) NOT NULL,
    record_id VARCHAR(100) NOT NULL,
    content_hash VARCHAR(64) NOT NULL,
    embedding JSON NOT NULL,
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
    CONSTRAINT uq_search_chunks_org_key UNIQUE (organization_id, chunk_key)
);

CREATE INDEX IF NOT EXISTS ix_search_chunks_organization_id ON search_chunks(organization_id);
"""

DOWNGRADE_SQL = """
DROP TABLE IF EXISTS search_chunks;

-- chat_history is kept: dropping it would lose saved conversations
"""


def upgrade():
    """Run upgrade migration"""
    from app import db
    from sqlalchemy import text
    db.session.execute(text(UPGRADE_SQL))
    db.session.commit()


def downgrade():
    """Run downgrade migration"""
    from app import db
    from sqlalchemy import text
    db.session.execute(text(DOWNGRADE_SQL))
    db.session.commit()


if __name__ == "__main__":
    import os
    import sys
    sys.path.insert(0, '.')
    from app import create_app

    app = create_app(os.getenv('FLASK_ENV', 'production'))
    with app.app_context():
        if len(sys.argv) > 1 and sys.argv[1] == 'downgrade':
            print("Running downgrade...")
            downgrade()
            print("Downgrade complete.")
        else:
            print("Running upgrade...")
            upgrade()
            print("Upgrade complete.")
