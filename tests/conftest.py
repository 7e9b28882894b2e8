"""Test configuration and fixtures for authgate."""

pytest_plugins = [
    "tests.fixtures.core",
    "tests.fixtures.auth",
]
