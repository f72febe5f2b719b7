"""Pytest configuration shared across the suite."""

import pytest

from dagscanner.utils.config import Config


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Keep a developer's .env from leaking into tests."""
    monkeypatch.setattr(Config, "BACKEND_API_URL", "https://scoring.example.com/api/analyze/")
    monkeypatch.setattr(Config, "EXPLORER_TX_URL", "https://explorer.example.com/tx/")
    monkeypatch.setattr(Config, "EXPECTED_CHAIN_ID", None)
