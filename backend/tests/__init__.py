"""
Test Suite for the PrintOps backend.

Structure:
    tests/
    ├── conftest.py         # Actors, model builders, mongomock-backed app
    ├── unit/               # Engine tests (status flow, lifecycle, reminder rules, permissions)
    └── integration/        # API tests through FastAPI's TestClient

To run tests:
    pytest backend/tests/
    pytest backend/tests/unit/
    pytest backend/tests/integration/
"""
