"""Shared test fixtures package.

Provides reusable fixtures and helpers for all test suites.
This package contains only helpers and function-scoped fixtures;
session-scoped fixtures live in conftest.py files.
"""
