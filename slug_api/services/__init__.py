"""
High-level use cases for the slug API.

Each service module orchestrates repositories to implement business rules
(validate a slug, reserve it, rename it, resolve stale links).

Routers (FastAPI endpoints) call these services instead of manipulating the
database session directly.
"""
