"""Test fixtures and utilities."""

from pathlib import Path

import pytest


@pytest.fixture
def sample_tree_response() -> dict:
    """Sample document/tree response with two doctypes."""
    return {
        "status": "ok",
        "data": [
            {"id": 1, "type": "dir", "text": "Invoices", "parent": 0},
            {"id": 2, "type": "dir", "text": "Contracts", "parent": 0},
            {"id": 10, "type": "file", "text": "invoice-2024-001.pdf", "parent": 1},
            {"id": 11, "type": "file", "text": "invoice-2024-002.pdf", "parent": 1},
            {"id": 20, "type": "file", "text": "lease.pdf", "parent": 2},
        ],
    }


@pytest.fixture
def sample_profile() -> dict:
    """Sample profile record as returned by profiles/{id}."""
    return {
        "id": "p-42",
        "displayName": "accounting",
        "users": [
            {
                "userName": "alice",
                "fullName": "Alice Martin",
                "firstname": "Alice",
                "lastname": "Martin",
                "email": "alice@example.com",
            },
            {
                "userName": "bob",
                "fullName": "Bob Old",
                "firstname": "Bob",
                "lastname": "Old",
                "email": "bob.old@example.com",
            },
        ],
        "jupiterRight": {"read": True, "write": False},
        "createdAt": "2024-01-15T10:00:00Z",
    }


@pytest.fixture
def sample_pdf(tmp_path) -> Path:
    """Small PDF-like file on disk."""
    path = tmp_path / "report.pdf"
    path.write_bytes(b"%PDF-1.4 sample content")
    return path
