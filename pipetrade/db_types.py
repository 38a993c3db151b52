"""Database-agnostic type definitions for SQLAlchemy models.

Every model in the project runs unchanged on SQLite (tests, local runs)
and PostgreSQL (production).
"""
from sqlalchemy import JSON, Numeric
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

# Use JSON instead of JSONB for cross-database compatibility
JSONType = JSON

# Renders as native UUID on PostgreSQL and CHAR(32) elsewhere
UUIDType = PG_UUID

# Quantities are metres with three decimals, money has two
QtyType = Numeric(14, 3)
MoneyType = Numeric(14, 2)
