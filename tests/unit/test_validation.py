"""Unit tests for opt-in parameter range validation."""

import math

import pytest

from maritaca.errors import ConfigurationError, ParameterRangeError
from maritaca.options import (
    build_options,
    with_max_tokens,
    with_repetition_penalty,
    with_temperature,
    with_tokens_per_message,
    with_top_p,
)
from maritaca.validation import parameter_violations, validate_options


def test_defaults_are_valid():
    """Test that default options pass validation."""
    opts = build_options()
    assert parameter_violations(opts) == {}
    assert validate_options(opts) is opts


def test_boundary_values_are_valid():
    """Test inclusive bounds."""
    opts = build_options(
        with_temperature(0.0),
        with_top_p(1.0),
        with_repetition_penalty(0.0),
        with_max_tokens(1),
        with_tokens_per_message(1),
    )
    assert parameter_violations(opts) == {}


@pytest.mark.parametrize(
    "modifier,field",
    [
        (with_temperature(-0.1), "temperature"),
        (with_temperature(math.nan), "temperature"),
        (with_top_p(0.0), "top_p"),
        (with_top_p(1.01), "top_p"),
        (with_repetition_penalty(-1.0), "repetition_penalty"),
        (with_max_tokens(0), "max_tokens"),
        (with_tokens_per_message(0), "tokens_per_message"),
    ],
)
def test_single_violation(modifier, field):
    """Test that each bound is reported under its field name."""
    opts = build_options(modifier)
    assert list(parameter_violations(opts)) == [field]


def test_all_violations_reported():
    """Test that one error lists every bad field."""
    opts = build_options(with_temperature(-1.0), with_top_p(2.0), with_max_tokens(-5))

    with pytest.raises(ParameterRangeError) as exc_info:
        validate_options(opts)

    assert set(exc_info.value.violations) == {"temperature", "top_p", "max_tokens"}
    assert "temperature" in str(exc_info.value)


def test_build_options_validate_flag():
    """Test that build_options only validates when asked to."""
    build_options(with_top_p(5.0))

    with pytest.raises(ConfigurationError):
        build_options(with_top_p(5.0), validate=True)


def test_validate_flag_passes_valid_options():
    """Test that valid options build normally with validation on."""
    opts = build_options(with_temperature(0.3), validate=True)
    assert opts.parameters.temperature == 0.3
