"""
FastAPI routers grouped by concern (slug management, public profiles).

Each file inside this package exposes an APIRouter that is included by
create_app() in app.py.
"""
