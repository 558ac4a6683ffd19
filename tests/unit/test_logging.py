"""Unit tests for bsurf.logging module."""

import logging

from bsurf import configure_logging, fit_bspline, get_logger
from bsurf.logging import BUILD_STAGE_LOGGERS, ROOT_LOGGER_NAME


def test_get_logger_attaches_single_null_handler():
    logger = get_logger("bsurf.tests.null")
    get_logger("bsurf.tests.null")
    null_handlers = [h for h in logger.handlers if isinstance(h, logging.NullHandler)]
    assert len(null_handlers) == 1


def test_configure_logging_uses_given_handlers():
    records = []

    class ListHandler(logging.Handler):
        def emit(self, record):
            records.append(record)

    handler = ListHandler()
    root = logging.getLogger(ROOT_LOGGER_NAME)
    previous_level = root.level
    try:
        configure_logging(logging.DEBUG, handlers=[handler], format_string="%(message)s")
        assert handler.formatter is not None
        get_logger("bsurf.tests.capture").debug("hello")
        assert [r.getMessage() for r in records] == ["hello"]
    finally:
        root.removeHandler(handler)
        root.setLevel(previous_level)


def test_build_logs_summary(caplog, quadratic_table):
    with caplog.at_level(logging.INFO, logger=ROOT_LOGGER_NAME):
        fit_bspline(quadratic_table, {"degrees": 2})
    assert any("Built B-spline" in record.getMessage() for record in caplog.records)


def test_every_build_stage_logs_under_the_root(caplog, quadratic_table):
    with caplog.at_level(logging.DEBUG, logger=ROOT_LOGGER_NAME):
        fit_bspline(quadratic_table, {"degrees": 2})
    assert {record.name for record in caplog.records} >= set(BUILD_STAGE_LOGGERS)
