"""
Tests for process logging configuration.
"""

import logging
from unittest.mock import patch

import pytest

from fulfillment.logging_setup import (
    DEFAULT_LOG_FORMAT,
    resolve_level,
    setup_logging,
)


@pytest.mark.parametrize(
    "name,level",
    [
        ("debug", logging.DEBUG),
        ("WARNING", logging.WARNING),
        ("verbose", None),
    ],
)
def test_resolve_level(name: str, level: object) -> None:
    assert resolve_level(name) == level


def test_reads_level_and_format_from_environment() -> None:
    with patch("fulfillment.logging_setup.logging.basicConfig") as configure:
        setup_logging({"LOG_LEVEL": "debug", "LOG_FORMAT": "%(message)s"})

    configure.assert_called_once_with(
        level=logging.DEBUG, format="%(message)s", force=True
    )


def test_unknown_level_falls_back_to_info(
    capsys: pytest.CaptureFixture[str],
) -> None:
    with patch("fulfillment.logging_setup.logging.basicConfig") as configure:
        setup_logging({"LOG_LEVEL": "verbose"})

    configure.assert_called_once_with(
        level=logging.INFO, format=DEFAULT_LOG_FORMAT, force=True
    )
    assert "Invalid log level: VERBOSE" in capsys.readouterr().out
