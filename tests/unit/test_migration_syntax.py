"""Tests for migration file syntax and structure."""

import importlib.util
from pathlib import Path

from seekpage.db.models import Base, Document

ROOT = Path(__file__).parent.parent.parent


class TestMigrationSyntax:
    """Test that migration files are syntactically correct."""

    def test_initial_migration_imports(self):
        """Test that the initial migration file imports correctly."""
        migration_files = list((ROOT / "migrations" / "versions").glob("*_initial_schema.py"))

        assert len(migration_files) == 1, "Should have exactly one initial schema migration"

        spec = importlib.util.spec_from_file_location("migration", migration_files[0])
        migration_module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(migration_module)

        assert callable(migration_module.upgrade)
        assert callable(migration_module.downgrade)
        assert isinstance(migration_module.revision, str)
        assert migration_module.down_revision is None

    def test_alembic_env_syntax(self):
        """Test that alembic env.py has the expected structure."""
        env_file = ROOT / "migrations" / "env.py"
        assert env_file.exists(), "env.py should exist in migrations directory"

        content = env_file.read_text()

        assert 'from alembic import context' in content
        assert 'def run_migrations_offline()' in content
        assert 'def run_migrations_online()' in content
        assert 'from seekpage.db.models import Base' in content

    def test_database_models(self):
        """Test that the documents model matches the migration."""
        assert Document.__tablename__ == 'documents'
        assert set(Base.metadata.tables['documents'].columns.keys()) == {
            'id', 'collection', 'body', 'created_at'
        }
        index_names = {index.name for index in Base.metadata.tables['documents'].indexes}
        assert index_names == {'documents_collection_id', 'documents_body_gin'}

    def test_migration_creates_required_objects(self):
        """Test that the migration creates the table and its indexes."""
        migration_file = next((ROOT / "migrations" / "versions").glob("*_initial_schema.py"))
        content = migration_file.read_text()

        assert "create_table('documents'" in content
        assert 'documents_collection_id' in content
        assert 'documents_body_gin' in content
        assert 'CREATE EXTENSION IF NOT EXISTS pgcrypto' in content
        assert 'drop_table(' in content
        assert 'drop_index(' in content

    def test_pyproject_declares_database_packages(self):
        """Test that pyproject.toml declares the database packages."""
        content = (ROOT / "pyproject.toml").read_text()

        assert 'alembic' in content
        assert 'asyncpg' in content
        assert 'sqlalchemy' in content
