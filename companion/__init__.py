"""
Companion practice backend.

Layout:
- core/         : settings, logging, error types
- db/ crud/     : async SQLAlchemy models and queries
- repositories/ : in-memory and SQL implementations of the practice repository
- services/     : identity, collection store, mutations, views, workspace, AI, notifications
- api/          : FastAPI routes (see main.py)
- jobs/         : standalone reminder jobs
"""
