import logging

from logging_config import ContextualFormatter


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="services.feeds",
        level=logging.WARNING,
        pathname=__file__,
        lineno=1,
        msg="Feed read failed",
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_appends_known_extra_fields() -> None:
    formatter = ContextualFormatter(fmt="%(levelname)s %(message)s")

    text = formatter.format(_record(house="Pabellon_1", granularity="minute", unrelated="x"))

    assert text == "WARNING Feed read failed | house=Pabellon_1 granularity=minute"


def test_formatter_without_context_leaves_message_alone() -> None:
    formatter = ContextualFormatter(fmt="%(message)s", extra_keys=["house"])

    assert formatter.format(_record(path="LOG")) == "Feed read failed"
