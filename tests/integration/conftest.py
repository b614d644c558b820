"""Fixtures for API integration tests."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from shotguide.api.main import create_app


@pytest.fixture
def test_client(test_config, mock_gemini) -> Iterator[TestClient]:
    """TestClient for an app whose backends are served by ``MockGemini``.

    The client is used as a context manager so the lifespan (shared HTTP
    client and services) runs.
    """
    app = create_app(test_config, transport=mock_gemini.transport)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def keyless_client(keyless_config, mock_gemini) -> Iterator[TestClient]:
    app = create_app(keyless_config, transport=mock_gemini.transport)
    with TestClient(app) as client:
        yield client
