"""
Core components for the campaign workflow service.

This module contains the shared building blocks used by the workflow services:
- Configuration management (config.py)
- Structured logging setup (logging_config.py)
- Result and request schemas (schemas.py)
- Prometheus metrics (metrics.py)
- Database configuration, sessions and ORM models (database/)
"""
