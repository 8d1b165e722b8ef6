"""Column types shared by the models."""
from sqlalchemy import JSON, Text
from sqlalchemy.dialects.postgresql import JSONB

# JSONB on PostgreSQL, SQLAlchemy's generic JSON (text backed) on SQLite.
JSONDict = JSON().with_variant(JSONB(astext_type=Text()), "postgresql")
