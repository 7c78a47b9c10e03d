"""Maritaca Python SDK - request options for the Maritaca text-generation API.

Options for one generation request (model, sampling, stopping, streaming,
templating, authentication) are composed from independent modifiers and
handed, finished and immutable, to the client that performs the HTTP call.

Quick Start:
    ```python
    from maritaca import build_options, with_model, with_max_tokens, with_token

    opts = build_options(
        with_model("sabia-2-medium"),
        with_max_tokens(256),
        with_token("my-api-key"),
    )
    opts.parameters.max_tokens  # 256
    ```

From a maritaca.toml file plus MARITACA_* environment variables:
    ```python
    from maritaca import load_options, with_stream

    opts = load_options(None, with_stream(True))
    ```

Module structure:
    - options: Options, GenerationParameters, with_* modifiers, build_options
    - validation: Opt-in local range checks
    - config: maritaca.toml and environment loading
    - errors: ConfigurationError hierarchy
    - tracing: OpenTelemetry setup
"""

from ._version import __version__
from .config import find_config_file, load_options, options_from_env, options_from_file
from .errors import (
    ConfigFileError,
    ConfigurationError,
    InvalidServerURLError,
    ParameterRangeError,
)
from .options import (
    DEFAULT_MODEL,
    DEFAULT_SERVER_URL,
    GenerationParameters,
    Option,
    Options,
    build_options,
    parse_server_url,
    with_chat_mode,
    with_custom_template,
    with_do_sample,
    with_format,
    with_http_client,
    with_max_tokens,
    with_model,
    with_repetition_penalty,
    with_server_url,
    with_stopping_tokens,
    with_stream,
    with_system_prompt,
    with_temperature,
    with_token,
    with_tokens_per_message,
    with_top_p,
)
from .tracing import init_telemetry, shutdown_telemetry
from .validation import validate_options

__all__ = [
    # Options
    "Options",
    "GenerationParameters",
    "Option",
    "build_options",
    "parse_server_url",
    "DEFAULT_MODEL",
    "DEFAULT_SERVER_URL",
    # Modifiers
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
    # Validation
    "validate_options",
    # Config
    "load_options",
    "options_from_file",
    "options_from_env",
    "find_config_file",
    # Errors
    "ConfigurationError",
    "InvalidServerURLError",
    "ParameterRangeError",
    "ConfigFileError",
    # Telemetry
    "init_telemetry",
    "shutdown_telemetry",
]
