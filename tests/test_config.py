from __future__ import annotations

import pytest

from tyeff.config import DEFAULT_MAX_DEPTH, EvaluatorConfig, log_level_from_env


def test_defaults() -> None:
    config = EvaluatorConfig()

    assert config.strict is False
    assert config.max_depth == DEFAULT_MAX_DEPTH
    assert config.readline_timeout is None


def test_from_env() -> None:
    config = EvaluatorConfig.from_env(
        {"TYEFF_STRICT": "true", "TYEFF_MAX_DEPTH": "50", "TYEFF_READLINE_TIMEOUT": "2.5"}
    )

    assert config == EvaluatorConfig(strict=True, max_depth=50, readline_timeout=2.5)


def test_from_empty_env() -> None:
    assert EvaluatorConfig.from_env({}) == EvaluatorConfig()


@pytest.mark.parametrize(
    "kwargs",
    [{"max_depth": 0}, {"readline_timeout": 0}, {"readline_timeout": -1.0}],
)
def test_invalid_values(kwargs) -> None:
    with pytest.raises(ValueError):
        EvaluatorConfig(**kwargs)


@pytest.mark.parametrize(
    "environ, expected",
    [
        ({}, "WARNING"),
        ({"TYEFF_LOG_LEVEL": "info"}, "INFO"),
        ({"TYEFF_DEBUG": "1", "TYEFF_LOG_LEVEL": "ERROR"}, "DEBUG"),
    ],
)
def test_log_level_from_env(environ, expected) -> None:
    assert log_level_from_env(environ) == expected
