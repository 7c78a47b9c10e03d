"""Test fixtures and configuration for maritaca-py tests.

Test Structure:
    tests/
    ├── conftest.py              # Shared fixtures
    ├── test_config.py           # maritaca.toml / environment loading
    └── unit/                    # Unit tests (no network, no files)
        ├── test_options.py
        ├── test_validation.py
        └── test_tracing.py

Running tests:
    pytest tests/unit -v        # Unit tests only
    pytest -v                   # Everything
"""

from typing import Generator

import pytest
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

_exporter = InMemorySpanExporter()


@pytest.fixture(scope="session", autouse=True)
def tracer_provider() -> TracerProvider:
    """Install an SDK tracer provider once so spans can be inspected."""
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(_exporter))
    trace.set_tracer_provider(provider)
    return provider


@pytest.fixture
def span_exporter() -> Generator[InMemorySpanExporter, None, None]:
    """In-memory exporter, cleared before and after each test."""
    _exporter.clear()
    yield _exporter
    _exporter.clear()


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    """Remove MARITACA_* variables so tests see only what they set."""
    for name in ("MARITACA_API_KEY", "MARITACA_SERVER_URL", "MARITACA_MODEL"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
