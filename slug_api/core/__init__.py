"""
Core utilities shared across the slug API.

This package hosts:
- configuration helpers (env vars, logging setup)
- cross-cutting helpers such as rate limiting and URL building

Services and routers depend on these primitives instead of reading the
environment directly.
"""
