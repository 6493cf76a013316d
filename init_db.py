"""
Initialize database tables.
Run this on first deploy instead of flask db upgrade.

Set RESET_DB=1 environment variable to drop and recreate all tables.
"""
import importlib.util
import os

from sqlalchemy import inspect

from app import create_app, db

MIGRATIONS = ('002_search_index.py',)


def _run_migration(filename):
    migration_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'migrations', filename)
    if not os.path.exists(migration_path):
        print(f"Migration {filename} not found, skipping...")
        return
    spec = importlib.util.spec_from_file_location("migration", migration_path)
    migration = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(migration)
    migration.upgrade()
    print(f"Migration {filename} complete")


def init_db():
    """Create all database tables."""
    app = create_app(os.getenv('FLASK_ENV', 'production'))

    with app.app_context():
        if os.getenv('RESET_DB', '').strip() in ('1', 'true', 'yes'):
            print("RESET_DB is set - dropping all tables...")
            db.drop_all()
            print("Tables dropped.")

        # Existing PostgreSQL databases get the ChatNPT tables through the
        # hand-written migrations; the SQL is idempotent.
        if db.engine.dialect.name == 'postgresql' and inspect(db.engine).has_table('users'):
            for filename in MIGRATIONS:
                _run_migration(filename)

        print("Creating database tables...")
        db.create_all()
        print("Database tables created successfully!")


if __name__ == '__main__':
    init_db()
