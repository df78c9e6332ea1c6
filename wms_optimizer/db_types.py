"""Column types shared by the models.

PostgreSQL gets JSONB and native UUID (matching the alembic revision);
the SQLite test database gets JSON and CHAR(32).
"""
from sqlalchemy import JSON, Uuid
from sqlalchemy.dialects.postgresql import JSONB

JSONType = JSON().with_variant(JSONB(), "postgresql")

UUIDType = Uuid
