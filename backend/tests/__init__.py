"""
Orbis Test Suite

Test Structure:
    tests/
    ├── conftest.py                  # Shared fixtures and configuration
    └── unit/
        ├── test_scheduling.py       # Scheduling engine properties
        ├── test_spaced_rep_service.py
        ├── test_schedule_store.py   # In-memory and SQL stores (mocked session)
        ├── test_equality.py         # Structural equality
        ├── test_code_sandbox.py     # Runtime execution and message protocol
        ├── test_execution_harness.py  # Real runtime processes
        ├── test_review_api.py
        ├── test_practice_api.py
        ├── test_error_handling.py
        └── test_config.py

Running Tests:
    # Run all tests
    pytest backend/tests/ -v

    # Run with coverage
    pytest backend/tests/ --cov=orbis --cov-report=html
"""
