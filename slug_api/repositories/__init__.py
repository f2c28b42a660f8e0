"""
Persistence adapters.

These modules encapsulate how slug assignments and owner records are stored
and retrieved. Services depend on the repository instead of touching the
SQLAlchemy session directly.
"""
