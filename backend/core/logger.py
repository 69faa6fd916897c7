import json
import logging
from typing import Any

events_logger = logging.getLogger("hint_engine.events")

LOG_FORMAT = "%(asctime)s | %(name)s | %(levelname)s | %(message)s"

# Interview content never reaches the logs, only its size.
REDACTED_FIELDS = frozenset({
	"text",
	"transcript",
	"transcription_text",
	"prompt",
	"custom_prompt",
	"hint",
	"response",
	"ocr_text",
})

MAX_VALUE_CHARS = 500


def configure_logging(level: str | int = logging.INFO) -> None:
	if isinstance(level, str):
		level = logging.getLevelName(level.strip().upper())
		if not isinstance(level, int):
			level = logging.INFO
	logging.basicConfig(format=LOG_FORMAT, level=level)


def _redact(value: Any) -> dict:
	size = len(value) if isinstance(value, (str, list, tuple)) else len(str(value or ""))
	return {"redacted": True, "length": size}


def sanitize(field: str, value: Any) -> Any:
	if str(field or "").lower() in REDACTED_FIELDS and value is not None:
		return _redact(value)
	if isinstance(value, str):
		return value if len(value) <= MAX_VALUE_CHARS else value[:MAX_VALUE_CHARS] + "..."
	if isinstance(value, (int, float, bool)) or value is None:
		return value
	if isinstance(value, dict):
		return {str(key): sanitize(str(key), item) for key, item in value.items()}
	if isinstance(value, (list, tuple, set)):
		return [sanitize(field, item) for item in value]
	return str(value)


def log_event(component: str, event: str, session_id: str | None, **fields) -> None:
	"""One JSON line per lifecycle or hint event; content fields are redacted."""
	record = {
		"component": str(component or "hint_engine"),
		"event": str(event or "unknown"),
		"session_id": str(session_id or ""),
	}
	for key, value in fields.items():
		record[str(key)] = sanitize(str(key), value)
	events_logger.info(json.dumps(record, ensure_ascii=False, default=str))


def log_error(component: str, event: str, session_id: str | None, error: BaseException, **fields) -> None:
	record = {
		"component": str(component or "hint_engine"),
		"event": str(event or "error"),
		"session_id": str(session_id or ""),
		"error_type": type(error).__name__,
		"error": sanitize("error", str(error)),
	}
	for key, value in fields.items():
		record[str(key)] = sanitize(str(key), value)
	events_logger.error(json.dumps(record, ensure_ascii=False, default=str))
