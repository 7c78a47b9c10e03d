"""Request options - composable settings for one Maritaca generation request.

Options are assembled from an ordered list of modifiers, each adjusting a
single concern (endpoint, model, sampling, streaming, templating, auth):

    ```python
    from maritaca import build_options, with_model, with_temperature, with_stream

    opts = build_options(
        with_model("sabia-2-medium"),
        with_temperature(0.2),
        with_stream(True),
    )
    ```

Every modifier returns a new ``Options`` value; nothing is mutated in place.
When two modifiers touch the same field the later one wins. Numeric values
are not range-checked here unless ``validate=True`` is passed to
``build_options``; the remote service is the enforcement point.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Optional, Sequence

import httpx
from opentelemetry import trace

from .errors import ConfigurationError, InvalidServerURLError
from .tracing import options_span_attributes
from .validation import parameter_violations, validate_options

# Get tracer for option-building spans
tracer = trace.get_tracer(__name__)

DEFAULT_SERVER_URL = "https://chat.maritaca.ai/api"
DEFAULT_MODEL = "sabia-2-medium"
DEFAULT_TIMEOUT_SEC = 60.0

_ALLOWED_SCHEMES = ("http", "https")

_default_client: Optional[httpx.Client] = None


def default_http_client() -> httpx.Client:
    """Return the shared HTTP client used when no transport was configured.

    The client is created on first use and reused across requests; a closed
    client is replaced.
    """
    global _default_client
    if _default_client is None or _default_client.is_closed:
        _default_client = httpx.Client(timeout=DEFAULT_TIMEOUT_SEC)
    return _default_client


def parse_server_url(raw_url: str) -> httpx.URL:
    """Parse a server endpoint into an ``httpx.URL``.

    Raises:
        InvalidServerURLError: If the string is not an absolute http(s) URL
    """
    if not isinstance(raw_url, str):
        raise InvalidServerURLError(repr(raw_url), "expected a string")
    if not raw_url.strip():
        raise InvalidServerURLError(raw_url, "URL is empty")
    try:
        url = httpx.URL(raw_url)
    except httpx.InvalidURL as e:
        raise InvalidServerURLError(raw_url, str(e)) from e
    if url.scheme not in _ALLOWED_SCHEMES:
        raise InvalidServerURLError(
            raw_url, f"scheme must be one of {list(_ALLOWED_SCHEMES)}, got {url.scheme!r}"
        )
    if not url.host:
        raise InvalidServerURLError(raw_url, "URL has no host")
    return url


@dataclass(frozen=True)
class GenerationParameters:
    """Sampling and decoding settings sent with a generation request.

    Attributes:
        chat_mode: Input is a list of conversation turns (True) or a raw prompt (False)
        max_tokens: Upper bound on generated tokens (None uses the service default)
        do_sample: Stochastic sampling (True) or always pick the most likely token
        temperature: Sampling randomness, >= 0
        top_p: Nucleus sampling cutoff in (0, 1]
        repetition_penalty: Penalty for repeating generated tokens, 1 is neutral
        stopping_tokens: Tokens that end generation as soon as one is produced
        stream: Deliver tokens incrementally instead of one complete response
        tokens_per_message: Tokens batched per streamed message, ignored without stream
        token: API key sent to the service
    """

    chat_mode: bool = True
    max_tokens: Optional[int] = None
    do_sample: bool = True
    temperature: float = 0.7
    top_p: float = 0.95
    repetition_penalty: float = 1.0
    stopping_tokens: tuple[str, ...] = ()
    stream: bool = False
    tokens_per_message: int = 4
    token: Optional[str] = field(default=None, repr=False)


@dataclass(frozen=True)
class Options:
    """Complete configuration for one generation request.

    Attributes:
        server_url: Parsed endpoint of the Maritaca service
        http_client: Transport to use (None means the shared default client)
        model: Remote model identifier, not validated locally
        format: Output format hint such as "json" (empty means plain text)
        system: System prompt, used only if the active template references it
        custom_template: Replaces the service-side prompt template when non-empty
        parameters: Sampling and decoding settings
    """

    server_url: httpx.URL = field(default_factory=lambda: httpx.URL(DEFAULT_SERVER_URL))
    http_client: Optional[httpx.Client] = field(default=None, compare=False)
    model: str = DEFAULT_MODEL
    format: str = ""
    system: str = ""
    custom_template: str = ""
    parameters: GenerationParameters = field(default_factory=GenerationParameters)

    def apply(self, *modifiers: Option) -> Options:
        """Return a copy with ``modifiers`` applied in order."""
        result = self
        for modifier in modifiers:
            result = modifier(result)
        return result

    @property
    def transport(self) -> httpx.Client:
        """The configured HTTP client, or the shared default one."""
        return self.http_client if self.http_client is not None else default_http_client()

    @property
    def effective_template(self) -> Optional[str]:
        """Template that applies at request time.

        A non-empty custom template replaces service-side templating entirely;
        None means the service's own template is used.
        """
        return self.custom_template or None


Option = Callable[[Options], Options]


def _with_parameters(**changes: Any) -> Option:
    def modifier(opts: Options) -> Options:
        return replace(opts, parameters=replace(opts.parameters, **changes))

    return modifier


def with_server_url(raw_url: str) -> Option:
    """Set the URL of the Maritaca service.

    The URL is parsed when the modifier is applied; a malformed value raises
    ``InvalidServerURLError`` from ``build_options``.
    """

    def modifier(opts: Options) -> Options:
        return replace(opts, server_url=parse_server_url(raw_url))

    return modifier


def with_http_client(client: httpx.Client) -> Option:
    """Set a custom HTTP client (shared, not owned by the options)."""

    def modifier(opts: Options) -> Options:
        return replace(opts, http_client=client)

    return modifier


def with_model(model: str) -> Option:
    """Set the model to use."""

    def modifier(opts: Options) -> Options:
        return replace(opts, model=model)

    return modifier


def with_format(fmt: str) -> Option:
    """Set the output format (the service currently only supports "json")."""

    def modifier(opts: Options) -> Options:
        return replace(opts, format=fmt)

    return modifier


def with_system_prompt(prompt: str) -> Option:
    """Set the system prompt.

    Only has an effect when the model's template uses the system prompt, or
    when a custom template set via ``with_custom_template`` references it.
    """

    def modifier(opts: Options) -> Options:
        return replace(opts, system=prompt)

    return modifier


def with_custom_template(template: str) -> Option:
    """Override the prompt templating done on the model side."""

    def modifier(opts: Options) -> Options:
        return replace(opts, custom_template=template)

    return modifier


def with_chat_mode(chat_mode: bool) -> Option:
    """Run in chat mode (default True).

    In chat mode the input is the user's message or the list of turns between
    user and assistant; otherwise it must be a single prompt string.
    """
    return _with_parameters(chat_mode=chat_mode)


def with_max_tokens(max_tokens: int) -> Option:
    """Set the maximum number of tokens to generate (minimum 1)."""
    return _with_parameters(max_tokens=max_tokens)


def with_do_sample(do_sample: bool) -> Option:
    """Enable sampling (default True).

    With sampling disabled the most likely token is always selected, which is
    deterministic but less diverse.
    """
    return _with_parameters(do_sample=do_sample)


def with_temperature(temperature: float) -> Option:
    """Set the sampling temperature (>= 0, default 0.7).

    Higher values give more diverse but less plausible text; values near zero
    are more plausible but more repetitive.
    """
    return _with_parameters(temperature=temperature)


def with_top_p(top_p: float) -> Option:
    """Set the nucleus sampling cutoff (default 0.95).

    Only the most likely tokens whose cumulative probability reaches ``top_p``
    are considered for the next token.
    """
    return _with_parameters(top_p=top_p)


def with_repetition_penalty(repetition_penalty: float) -> Option:
    """Set the repetition penalty (>= 0, default 1)."""
    return _with_parameters(repetition_penalty=repetition_penalty)


def with_stopping_tokens(tokens: Sequence[str]) -> Option:
    """Replace the list of tokens that stop generation.

    A bare string is treated as a single token.
    """
    if isinstance(tokens, str):
        tokens = [tokens]
    return _with_parameters(stopping_tokens=tuple(tokens))


def with_stream(stream: bool) -> Option:
    """Return tokens as they are generated instead of one complete response."""
    return _with_parameters(stream=stream)


def with_tokens_per_message(tokens_per_message: int) -> Option:
    """Set how many tokens each streamed message carries (default 4).

    Ignored when streaming is disabled.
    """
    return _with_parameters(tokens_per_message=tokens_per_message)


def with_token(token: str) -> Option:
    """Set the API key used to authenticate with the service."""
    return _with_parameters(token=token)


def _log_accepted_values(opts: Options) -> None:
    for name, message in parameter_violations(opts).items():
        logging.warning("[maritaca] Accepting out-of-range %s: %s", name, message)

    params = opts.parameters
    if not params.stream and params.tokens_per_message != GenerationParameters.tokens_per_message:
        logging.debug(
            "[maritaca] tokens_per_message=%s has no effect without stream",
            params.tokens_per_message,
        )


def build_options(*modifiers: Option, validate: bool = False) -> Options:
    """Build request options from defaults and an ordered list of modifiers.

    Args:
        *modifiers: Modifiers applied strictly in the given order
        validate: Also check numeric parameter ranges locally

    Returns:
        The finished, immutable Options

    Raises:
        InvalidServerURLError: If a server URL modifier gets a malformed URL
        ParameterRangeError: If ``validate`` is set and a value is out of range
    """
    with tracer.start_as_current_span(
        "maritaca.options.build",
        attributes={"maritaca.options.modifiers": len(modifiers)},
    ) as span:
        try:
            opts = Options().apply(*modifiers)
            if validate:
                validate_options(opts)
        except ConfigurationError as e:
            span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
            span.record_exception(e)
            logging.warning("[maritaca] Rejected options: %s", e)
            raise

        if not validate:
            _log_accepted_values(opts)

        span.set_attributes(options_span_attributes(opts))
        span.set_status(trace.Status(trace.StatusCode.OK))
        logging.debug(
            "[maritaca] Built options: model=%s server=%s stream=%s",
            opts.model,
            opts.server_url,
            opts.parameters.stream,
        )
        return opts


__all__ = [
    "DEFAULT_SERVER_URL",
    "DEFAULT_MODEL",
    "GenerationParameters",
    "Options",
    "Option",
    "build_options",
    "default_http_client",
    "parse_server_url",
    "with_server_url",
    "with_http_client",
    "with_model",
    "with_format",
    "with_system_prompt",
    "with_custom_template",
    "with_chat_mode",
    "with_max_tokens",
    "with_do_sample",
    "with_temperature",
    "with_top_p",
    "with_repetition_penalty",
    "with_stopping_tokens",
    "with_stream",
    "with_tokens_per_message",
    "with_token",
]
