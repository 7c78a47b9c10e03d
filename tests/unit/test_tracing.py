"""Unit tests for option spans and telemetry setup."""

from unittest.mock import MagicMock, patch

import pytest
from opentelemetry import trace

from maritaca import tracing
from maritaca.errors import InvalidServerURLError
from maritaca.options import (
    build_options,
    with_max_tokens,
    with_model,
    with_server_url,
    with_stopping_tokens,
    with_stream,
    with_token,
    with_tokens_per_message,
)
from maritaca.tracing import options_span_attributes


class TestOptionsSpanAttributes:
    """Tests for options_span_attributes()."""

    def test_default_attributes(self):
        """Test attributes for default options."""
        attrs = options_span_attributes(build_options())

        assert attrs["maritaca.model"] == "sabia-2-medium"
        assert attrs["maritaca.server.host"] == "chat.maritaca.ai"
        assert attrs["maritaca.stream"] is False
        assert attrs["maritaca.token.set"] is False
        assert "maritaca.max_tokens" not in attrs
        assert "maritaca.tokens_per_message" not in attrs
        assert "maritaca.format" not in attrs

    def test_optional_attributes(self):
        """Test attributes that only appear when relevant."""
        attrs = options_span_attributes(
            build_options(
                with_max_tokens(64),
                with_stream(True),
                with_tokens_per_message(2),
                with_stopping_tokens(["a", "b", "c"]),
            )
        )

        assert attrs["maritaca.max_tokens"] == 64
        assert attrs["maritaca.tokens_per_message"] == 2
        assert attrs["maritaca.stopping_tokens.count"] == 3

    def test_token_never_recorded(self):
        """Test that only the presence of a token is recorded."""
        attrs = options_span_attributes(build_options(with_token("sk-secret")))

        assert attrs["maritaca.token.set"] is True
        assert "sk-secret" not in [str(v) for v in attrs.values()]


class TestBuildSpan:
    """Tests for the span emitted by build_options()."""

    def test_success_span(self, span_exporter):
        """Test that a successful build records an OK span."""
        build_options(with_model("sabia-3"), with_stream(True))

        spans = span_exporter.get_finished_spans()
        assert len(spans) == 1
        span = spans[0]
        assert span.name == "maritaca.options.build"
        assert span.status.status_code == trace.StatusCode.OK
        assert span.attributes["maritaca.options.modifiers"] == 2
        assert span.attributes["maritaca.model"] == "sabia-3"
        assert span.attributes["maritaca.stream"] is True

    def test_error_span(self, span_exporter):
        """Test that a failed build records the exception."""
        with pytest.raises(InvalidServerURLError):
            build_options(with_server_url("not a url\n"))

        spans = span_exporter.get_finished_spans()
        assert len(spans) == 1
        span = spans[0]
        assert span.status.status_code == trace.StatusCode.ERROR
        assert any(event.name == "exception" for event in span.events)


class TestInitTelemetry:
    """Tests for init_telemetry() / shutdown_telemetry()."""

    def test_init_and_shutdown(self, monkeypatch):
        """Test that init installs a provider once and shutdown resets."""
        monkeypatch.setattr(tracing, "_initialized", False)
        provider = MagicMock()

        with patch.object(tracing, "OTLPSpanExporter") as exporter_cls, patch.object(
            tracing.trace, "set_tracer_provider"
        ) as set_provider:
            tracing.init_telemetry(service_name="test-svc", otlp_endpoint="http://collector:4317")
            tracing.init_telemetry(service_name="ignored")

        exporter_cls.assert_called_once_with(endpoint="http://collector:4317", insecure=True)
        set_provider.assert_called_once()
        assert tracing._initialized is True

        with patch.object(tracing.trace, "get_tracer_provider", return_value=provider):
            tracing.shutdown_telemetry()

        provider.shutdown.assert_called_once()
        assert tracing._initialized is False

    def test_resource_carries_package_version(self, monkeypatch):
        """Test that service.version defaults to the package version."""
        from maritaca import __version__

        monkeypatch.setattr(tracing, "_initialized", False)

        with patch.object(tracing, "OTLPSpanExporter"), patch.object(
            tracing.trace, "set_tracer_provider"
        ) as set_provider:
            tracing.init_telemetry(service_name="test-svc")

        provider = set_provider.call_args.args[0]
        attrs = provider.resource.attributes
        assert attrs["service.name"] == "test-svc"
        assert attrs["service.version"] == __version__
        assert attrs["maritaca.sdk.version"] == __version__

        provider.shutdown()

    def test_resource_custom_service_version(self, monkeypatch):
        """Test that an explicit service_version is reported."""
        monkeypatch.setattr(tracing, "_initialized", False)

        with patch.object(tracing, "OTLPSpanExporter"), patch.object(
            tracing.trace, "set_tracer_provider"
        ) as set_provider:
            tracing.init_telemetry(service_name="test-svc", service_version="2.3.4")

        provider = set_provider.call_args.args[0]
        assert provider.resource.attributes["service.version"] == "2.3.4"

        provider.shutdown()

    def test_shutdown_without_init(self, monkeypatch):
        """Test that shutdown is a no-op before init."""
        monkeypatch.setattr(tracing, "_initialized", False)

        with patch.object(tracing.trace, "get_tracer_provider") as get_provider:
            tracing.shutdown_telemetry()

        get_provider.assert_not_called()
