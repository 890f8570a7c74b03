from __future__ import annotations

import re

from sqldocx.shared.logging import get_logger

TIMESTAMPED = re.compile(r"^\[\d{2}:\d{2}:\d{2}\] ", re.MULTILINE)


def test_logger_info_routes_to_stderr_with_timestamp(capfd) -> None:
    logger = get_logger()

    logger.info("Connecting to db.example.com...")

    captured = capfd.readouterr()
    assert "Connecting to db.example.com..." in captured.err
    assert "Connecting to db.example.com..." not in captured.out
    assert TIMESTAMPED.search(captured.err)


def test_logger_debug_only_when_verbose(capfd) -> None:
    get_logger().debug("hidden detail")
    get_logger(verbose=True).debug("shown detail")

    captured = capfd.readouterr()
    assert "hidden detail" not in captured.err
    assert "shown detail" in captured.err


def test_logger_without_timestamps(capfd) -> None:
    get_logger(timestamps=False).warning("plain line")

    captured = capfd.readouterr()
    assert "plain line" in captured.err
    assert not TIMESTAMPED.search(captured.err)
