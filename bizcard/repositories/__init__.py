"""
Persistence adapters for the structured store.

Services depend on SQLRepository and receive domain dataclasses back, never
SQLAlchemy entities.
"""
