import json
import logging
import sys
from pathlib import Path

import pytest
import structlog

# Ensure src/ is on sys.path for local test runs without installation
PROJECT_ROOT = Path(__file__).resolve().parent.parent
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))

from evsink import __version__  # noqa: E402
from evsink.utils.logging import configure_logging, get_logger, log_context  # noqa: E402


@pytest.fixture(autouse=True)
def restore_logging():
    yield
    structlog.reset_defaults()
    logging.basicConfig(handlers=[logging.NullHandler()], force=True)


def _json_lines(text: str):
    return [json.loads(line) for line in text.splitlines() if line.startswith("{")]


@pytest.mark.unit
def test_events_carry_service_metadata_and_context(capsys) -> None:
    configure_logging(level="INFO", json_output=True)
    logger = get_logger("evsink.tests")

    with log_context(method="POST", path="/store"):
        logger.info("segment_created", file_name="2024-01-01T00:00:00.000000Z.events.zst")
    logger.info("outside_request")

    first, second = _json_lines(capsys.readouterr().err)[-2:]
    assert first["event"] == "segment_created"
    assert first["service_name"] == "evsink"
    assert first["version"] == __version__
    assert first["path"] == "/store"
    assert first["level"] == "info"
    assert "path" not in second


@pytest.mark.unit
def test_uvicorn_records_share_the_formatter(capsys) -> None:
    configure_logging(level="INFO", json_output=True)

    logging.getLogger("uvicorn.error").info(
        "Application startup complete.",
        extra={"color_message": "\x1b[1mstartup\x1b[0m", "client": "127.0.0.1"},
    )

    (line,) = _json_lines(capsys.readouterr().err)[-1:]
    assert line["event"] == "Application startup complete."
    assert line["logger"] == "uvicorn.error"
    assert line["client"] == "127.0.0.1"
    assert "color_message" not in line


@pytest.mark.unit
def test_invalid_level_is_rejected() -> None:
    with pytest.raises(ValueError):
        configure_logging(level="CHATTY")
