"""Database module for the campaign workflow service.

This module contains all database-related functionality including:
- Database configuration and connection management
- SQLAlchemy models and ORM mappings (shared and per-organization schemas)
- Database session handling and tenant-scoped sessions

Key components:
- db_config.py: DATABASE_URL validation and normalization
- database_session.py: Session management and context handlers
- json_type.py: JSONB column type used by settings and snapshot columns
- models.py: SQLAlchemy ORM models for all entities
"""
