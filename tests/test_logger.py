from __future__ import annotations

import logging

import pytest

from svd2nim.utils.logger import PACKAGE_LOGGER, get_logger, setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    logger = logging.getLogger(PACKAGE_LOGGER)
    handlers, level = logger.handlers[:], logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)


def test_setup_leaves_root_logger_alone(capsys):
    root = logging.getLogger()
    before = root.handlers[:]

    setup_logging("INFO")
    setup_logging("DEBUG")
    get_logger("svd2nim.codegen.device").info("hello")

    assert root.handlers == before
    assert capsys.readouterr().err.count("[INFO] svd2nim.codegen.device: hello\n") == 1


def test_quiet_prints_bare_messages(capsys):
    setup_logging("WARNING", quiet=True)
    get_logger("svd2nim.app").info("dropped")
    get_logger("svd2nim.app").warning("kept")

    captured = capsys.readouterr()
    assert captured.err == "kept\n"
    assert captured.out == ""


def test_loggers_live_under_the_package():
    assert get_logger("svd2nim.svd.checks").name == "svd2nim.svd.checks"
    assert get_logger("svd2nim").name == "svd2nim"
    assert get_logger("__main__").name == "svd2nim.__main__"
