"""Shared pytest fixtures and helpers for auth tests."""
