"""Unit tests for logging configuration."""

import io
import json

import structlog

from authorscout.utils.logging import configure_logging, crawl_context


def test_production_renders_json_lines():
    stream = io.StringIO()
    configure_logging("INFO", environment="production", stream=stream)

    structlog.get_logger("test").info("author_created", handle="jdoe")

    line = json.loads(stream.getvalue().strip().splitlines()[-1])
    assert line["event"] == "author_created"
    assert line["handle"] == "jdoe"
    assert line["level"] == "info"


def test_level_filters_debug():
    stream = io.StringIO()
    configure_logging("WARNING", environment="production", stream=stream)

    structlog.get_logger("test").info("hidden")

    assert stream.getvalue() == ""


def test_crawl_context_binds_run_id():
    stream = io.StringIO()
    configure_logging("INFO", environment="production", stream=stream)
    logger = structlog.get_logger("test")

    with crawl_context(run_id="abc123"):
        logger.info("inside")
    logger.info("outside")

    inside, outside = (json.loads(l) for l in stream.getvalue().strip().splitlines())
    assert inside["run_id"] == "abc123"
    assert "run_id" not in outside
