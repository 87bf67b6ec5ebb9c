"""
Test Suite

This module contains all tests for the Trade Approval Engine backend.

Structure:
    tests/
    ├── __init__.py         # This file
    ├── conftest.py         # Pytest fixtures (mongomock-backed database)
    ├── unit/               # Unit tests
    │   ├── __init__.py
    │   ├── test_engine/    # Evaluator, matcher, resolver, workflow
    │   └── test_services/  # Service layer tests
    └── integration/        # Integration tests
        ├── __init__.py
        └── test_api/       # API endpoint tests

To run tests:
    pytest tests/
    pytest tests/unit/
    pytest tests/integration/
"""
