"""
Ultimate Manager Test Suite
===========================

Test Organization
-----------------
- tests/unit/          : Fast tests against the in-memory store
- tests/integration/   : Redis adapter tests with testcontainers (needs Docker)
- tests/conftest.py    : Shared fixtures, fake clock and seeding helpers

Run only the fast suite with ``pytest -m "not integration"``.
"""
