"""Tests for structlog configuration."""

import pytest
import structlog

from cpamm.log_config import configure_logging


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


def test_info_by_default(capsys):
    configure_logging()
    logger = structlog.get_logger()
    logger.debug("hidden_event")
    logger.info("pair_created", pair="0x1000")

    out = capsys.readouterr().out
    assert "hidden_event" not in out
    assert "pair_created" in out


def test_verbose_emits_debug(capsys):
    configure_logging(verbose=True)
    structlog.get_logger().debug("swap_settled")
    assert "swap_settled" in capsys.readouterr().out
