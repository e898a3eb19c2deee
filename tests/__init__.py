"""Test package for quakescope.

This package contains:
- Unit tests per component (distance, clustering, scoring, caching, registry, storage)
- Service tests over in-memory stores (backfill, fault context)
- HTTP tests with FastAPI's TestClient (test_api.py)
- Test configuration (conftest.py)
"""
