import logging

import logging_config
from logging_config import ContextualFormatter, configure_logging


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="services.readings",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="Generation job finished",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_known_context_keys() -> None:
    formatter = ContextualFormatter(fmt="%(message)s")

    line = formatter.format(_record(job_id="abc", row_count=72, excursion_count=None, unrelated="x"))

    assert line == "Generation job finished | job_id=abc row_count=72"


def test_formatter_without_context_returns_plain_message() -> None:
    formatter = ContextualFormatter(fmt="%(levelname)s %(message)s")

    assert formatter.format(_record()) == "INFO Generation job finished"


def test_configure_logging_is_idempotent_unless_forced(monkeypatch) -> None:
    monkeypatch.setattr(logging_config, "_configured", False)
    root = logging.getLogger()
    original_level = root.level
    original_handlers = list(root.handlers)
    try:
        configure_logging("warning")
        assert root.level == logging.WARNING

        configure_logging("DEBUG")
        assert root.level == logging.WARNING

        configure_logging("DEBUG", force=True)
        assert root.level == logging.DEBUG
        assert isinstance(root.handlers[0].formatter, ContextualFormatter)
    finally:
        root.handlers[:] = original_handlers
        root.setLevel(original_level)
