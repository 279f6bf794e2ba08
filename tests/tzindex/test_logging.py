from __future__ import annotations

import io
import logging
import sys

import pytest

from tzindex.core.logging import configure_logging


def test_reconfiguring_after_stderr_is_replaced(monkeypatch: pytest.MonkeyPatch) -> None:
    first = io.StringIO()
    monkeypatch.setattr(sys, "stderr", first)
    configure_logging(logging.INFO)
    first.close()

    second = io.StringIO()
    monkeypatch.setattr(sys, "stderr", second)
    logger = configure_logging(logging.INFO)
    logging.getLogger("tzindex.engine").info("written to the current stderr")
    assert "written to the current stderr" in second.getvalue()
    assert logger.name == "tzindex"


def test_level_follows_latest_call(monkeypatch: pytest.MonkeyPatch) -> None:
    buffer = io.StringIO()
    monkeypatch.setattr(sys, "stderr", buffer)
    configure_logging(logging.WARNING)
    logging.getLogger("tzindex.engine").info("quiet")
    configure_logging(logging.DEBUG)
    logging.getLogger("tzindex.engine").debug("loud")
    assert "quiet" not in buffer.getvalue()
    assert "loud" in buffer.getvalue()
