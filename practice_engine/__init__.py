"""
Practice session engine.

Packages:
- practice: session store, answer evaluators, shuffle cache, daily limits
- db: SQLAlchemy models and the PostgreSQL gateway/catalog
- api: FastAPI application
- cli: Typer admin commands
"""

__version__ = "1.0.0"
