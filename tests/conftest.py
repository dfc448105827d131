"""Root conftest: shared pytest markers.

Markers
-------
unit        fast, no I/O, pure logic
api         exercises FastAPI routes through TestClient
"""

from __future__ import annotations


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast, no I/O tests")
    config.addinivalue_line("markers", "api: FastAPI route tests")
