"""Configuration files and environment for Maritaca request options.

Options can be kept in a maritaca.toml file, overridden from the environment,
and finally from call-site modifiers (later sources win):

    [maritaca]
    server_url = "https://chat.maritaca.ai/api"
    model = "sabia-2-medium"
    token = "${MARITACA_API_KEY}"
    temperature = 0.3
    stopping_tokens = ["</s>", "\\n\\nUser:"]
    stream = true
    tokens_per_message = 8

Keys are the option field names. ${VAR} and $VAR references are expanded from
the environment after loading the nearest .env file. Recognised environment
overrides: MARITACA_API_KEY, MARITACA_SERVER_URL, MARITACA_MODEL.
"""

from __future__ import annotations

import logging
import os
import re
import sys
from pathlib import Path
from typing import Any, Callable, Mapping, MutableMapping, Optional

from pydantic import BaseModel, ConfigDict, ValidationError

from .errors import ConfigFileError
from .options import (
    Option,
    Options,
    build_options,
    with_chat_mode,
    with_custom_template,
    with_do_sample,
    with_format,
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

if sys.version_info >= (3, 11):
    import tomllib as toml  # type: ignore
else:
    import tomli as toml  # type: ignore

CONFIG_FILE_NAME = "maritaca.toml"
CONFIG_SECTION = "maritaca"

ENV_API_KEY = "MARITACA_API_KEY"
ENV_SERVER_URL = "MARITACA_SERVER_URL"
ENV_MODEL = "MARITACA_MODEL"

_ENV_MODIFIERS: dict[str, Callable[[str], Option]] = {
    ENV_SERVER_URL: with_server_url,
    ENV_MODEL: with_model,
    ENV_API_KEY: with_token,
}


def _load_env_file(env_path: Path, environ: MutableMapping[str, str]) -> None:
    """Load variables from a .env file into ``environ`` without overriding existing ones."""
    if not env_path.exists():
        return

    try:
        with open(env_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                # Skip empty lines and comments
                if not line or line.startswith("#"):
                    continue

                # KEY=VALUE, KEY='VALUE' or KEY="VALUE"
                if "=" in line:
                    key, _, value = line.partition("=")
                    key = key.strip()
                    value = value.strip()

                    if value and value[0] in ('"', "'") and value[-1] == value[0]:
                        value = value[1:-1]

                    if key and key not in environ:
                        environ[key] = value
    except OSError as e:
        logging.warning("[maritaca.config] Failed to load %s: %s", env_path, e)


_VAR_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


def _expand_env_vars(value: Any, environ: Mapping[str, str]) -> Any:
    """Recursively expand ${VAR} and $VAR references from ``environ``.

    Unknown variables are left as written.
    """
    if isinstance(value, str):
        return _VAR_PATTERN.sub(
            lambda m: environ.get(m.group(1) or m.group(2), m.group(0)), value
        )
    if isinstance(value, dict):
        return {k: _expand_env_vars(v, environ) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_env_vars(item, environ) for item in value]
    return value


class OptionsSection(BaseModel):
    """Schema of the [maritaca] table in maritaca.toml."""

    model_config = ConfigDict(extra="forbid")

    server_url: Optional[str] = None
    model: Optional[str] = None
    format: Optional[str] = None
    system: Optional[str] = None
    custom_template: Optional[str] = None
    chat_mode: Optional[bool] = None
    max_tokens: Optional[int] = None
    do_sample: Optional[bool] = None
    temperature: Optional[float] = None
    top_p: Optional[float] = None
    repetition_penalty: Optional[float] = None
    stopping_tokens: Optional[list[str]] = None
    stream: Optional[bool] = None
    tokens_per_message: Optional[int] = None
    token: Optional[str] = None

    def to_modifiers(self) -> list[Option]:
        """Turn every key present in the table into its modifier, in field order."""
        return [
            _SECTION_MODIFIERS[name](value)
            for name, value in self.model_dump(exclude_none=True).items()
        ]


_SECTION_MODIFIERS: dict[str, Callable[[Any], Option]] = {
    "server_url": with_server_url,
    "model": with_model,
    "format": with_format,
    "system": with_system_prompt,
    "custom_template": with_custom_template,
    "chat_mode": with_chat_mode,
    "max_tokens": with_max_tokens,
    "do_sample": with_do_sample,
    "temperature": with_temperature,
    "top_p": with_top_p,
    "repetition_penalty": with_repetition_penalty,
    "stopping_tokens": with_stopping_tokens,
    "stream": with_stream,
    "tokens_per_message": with_tokens_per_message,
    "token": with_token,
}


def _env_search_paths(path: Path) -> list[Path]:
    """.env candidates: the config file's directory and its parents, then cwd."""
    paths = []
    current = path.parent.resolve()
    while current != current.parent:
        paths.append(current / ".env")
        current = current.parent
    cwd_env = Path.cwd().resolve() / ".env"
    if cwd_env not in paths:
        paths.append(cwd_env)
    return paths


def _read_file(path: Path, environ: MutableMapping[str, str]) -> list[Option]:
    if not path.exists():
        return []

    # First .env found wins
    for env_path in _env_search_paths(path):
        if env_path.exists():
            _load_env_file(env_path, environ)
            break

    try:
        raw_data = toml.loads(path.read_text(encoding="utf-8"))
    except (OSError, toml.TOMLDecodeError) as e:
        raise ConfigFileError(str(path), str(e)) from e

    section = raw_data.get(CONFIG_SECTION)
    if section is None:
        logging.debug("[maritaca.config] No [%s] table in %s", CONFIG_SECTION, path)
        return []
    if not isinstance(section, dict):
        raise ConfigFileError(str(path), "expected a table", key=CONFIG_SECTION)

    try:
        parsed = OptionsSection.model_validate(_expand_env_vars(section, environ))
    except ValidationError as e:
        raise ConfigFileError(str(path), str(e), key=CONFIG_SECTION) from e

    modifiers = parsed.to_modifiers()
    logging.debug("[maritaca.config] Loaded %d settings from %s", len(modifiers), path)
    return modifiers


def options_from_file(
    path: Path, environ: Optional[Mapping[str, str]] = None
) -> list[Option]:
    """Read modifiers from the [maritaca] table of a TOML file.

    A missing file or a file without the table yields no modifiers. References
    are expanded from ``environ`` plus the nearest .env file. With the default
    ``os.environ`` the .env values are exported to the process, as before; an
    explicit mapping is copied and left untouched.

    Raises:
        ConfigFileError: If the file is not valid TOML or the table has
            unknown keys or wrongly typed values
    """
    env = os.environ if environ is None else dict(environ)
    return _read_file(path, env)


def options_from_env(environ: Optional[Mapping[str, str]] = None) -> list[Option]:
    """Read modifiers from MARITACA_* environment variables; empty values are ignored."""
    environ = os.environ if environ is None else environ
    return [factory(environ[name]) for name, factory in _ENV_MODIFIERS.items() if environ.get(name)]


def find_config_file(start_dir: Path = Path(".")) -> Optional[Path]:
    """Search upward from start_dir for maritaca.toml."""
    current = start_dir.resolve()
    while current != current.parent:
        config_path = current / CONFIG_FILE_NAME
        if config_path.exists():
            return config_path
        current = current.parent
    return None


def load_options(
    path: Optional[Path] = None,
    *overrides: Option,
    environ: Optional[Mapping[str, str]] = None,
    validate: bool = False,
) -> Options:
    """Build options from a config file, the environment, then ``overrides``.

    The same environment (``environ`` or os.environ, plus the nearest .env
    file) feeds both ${VAR} expansion in the file and the MARITACA_* overrides.

    Args:
        path: Config file to read (default: nearest maritaca.toml, if any)
        *overrides: Call-site modifiers applied last
        environ: Environment mapping (default: os.environ); never modified
        validate: Also check numeric parameter ranges locally

    Returns:
        The finished Options
    """
    if path is None:
        path = find_config_file()

    env: MutableMapping[str, str] = os.environ if environ is None else dict(environ)

    modifiers: list[Option] = []
    if path is not None:
        modifiers.extend(_read_file(path, env))
    modifiers.extend(options_from_env(env))
    modifiers.extend(overrides)
    return build_options(*modifiers, validate=validate)


__all__ = [
    "CONFIG_FILE_NAME",
    "ENV_API_KEY",
    "ENV_SERVER_URL",
    "ENV_MODEL",
    "OptionsSection",
    "options_from_file",
    "options_from_env",
    "find_config_file",
    "load_options",
]
