import io
import json
import logging
import sys

import pytest

from website.config import Config
from website.logs import JSONFormatter, configure_logging


@pytest.fixture
def restore_logger():
    logger = logging.getLogger("website")
    handlers, level, propagate = list(logger.handlers), logger.level, logger.propagate
    yield
    logger.handlers = handlers
    logger.setLevel(level)
    logger.propagate = propagate


def test_production_logs_json(restore_logger):
    stream = io.StringIO()
    configure_logging(Config(production=True, log_level=logging.INFO), stream=stream)
    log = logging.getLogger("website.test")
    log.debug("hidden")
    log.info("started http server", extra={"addr": "0.0.0.0:8080"})

    lines = stream.getvalue().splitlines()
    assert len(lines) == 1
    payload = json.loads(lines[0])
    assert payload["msg"] == "started http server"
    assert payload["level"] == "INFO"
    assert payload["addr"] == "0.0.0.0:8080"
    assert payload["logger"] == "website.test"


def test_production_respects_level(restore_logger):
    stream = io.StringIO()
    configure_logging(Config(production=True, log_level=logging.ERROR), stream=stream)
    logging.getLogger("website").warning("ignored")
    assert stream.getvalue() == ""


def test_development_logs_text_at_debug(restore_logger):
    stream = io.StringIO()
    configure_logging(Config(production=False, log_level=logging.ERROR), stream=stream)
    logging.getLogger("website.test").debug("details here")
    output = stream.getvalue()
    assert "DEBUG" in output
    assert "details here" in output
    with pytest.raises(json.JSONDecodeError):
        json.loads(output)


def test_reconfiguring_replaces_handler(restore_logger):
    configure_logging(Config(production=False), stream=io.StringIO())
    configure_logging(Config(production=False), stream=io.StringIO())
    assert len(logging.getLogger("website").handlers) == 1


def test_json_formatter_includes_exception():
    try:
        raise ValueError("boom")
    except ValueError:
        record = logging.getLogger("x").makeRecord(
            "x", logging.ERROR, __file__, 1, "failed", (), exc_info=sys.exc_info()
        )
    payload = json.loads(JSONFormatter().format(record))
    assert payload["msg"] == "failed"
    assert "ValueError: boom" in payload["exc"]
