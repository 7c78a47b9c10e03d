"""Local range checks for generation parameters.

Modifiers accept any value and leave enforcement to the service. Callers that
prefer to fail before a request is sent can run ``validate_options`` (or pass
``validate=True`` to ``build_options``).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from .errors import ParameterRangeError

if TYPE_CHECKING:
    from .options import Options


def parameter_violations(options: Options) -> dict[str, str]:
    """Return field name -> violated bound for every out-of-range parameter."""
    params = options.parameters
    violations: dict[str, str] = {}

    # Written as negated comparisons so NaN is rejected too
    if not params.temperature >= 0:
        violations["temperature"] = f"must be >= 0, got {params.temperature}"
    if not 0 < params.top_p <= 1:
        violations["top_p"] = f"must be in (0, 1], got {params.top_p}"
    if not params.repetition_penalty >= 0:
        violations["repetition_penalty"] = f"must be >= 0, got {params.repetition_penalty}"
    if params.max_tokens is not None and params.max_tokens < 1:
        violations["max_tokens"] = f"must be >= 1, got {params.max_tokens}"
    if params.tokens_per_message < 1:
        violations["tokens_per_message"] = f"must be >= 1, got {params.tokens_per_message}"

    return violations


def validate_options(options: Options) -> Options:
    """Check parameter ranges, returning ``options`` unchanged when valid.

    Raises:
        ParameterRangeError: Listing every violating field
    """
    violations = parameter_violations(options)
    if violations:
        raise ParameterRangeError(violations)
    return options


__all__ = ["parameter_violations", "validate_options"]
