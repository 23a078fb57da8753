import json
import logging

from commentary.obs import logging as obs_logging


def _record(msg: str, **extra) -> logging.LogRecord:
	record = logging.LogRecord("commentary.test", logging.INFO, __file__, 1, msg, None, None)
	for key, value in extra.items():
		setattr(record, key, value)
	return record


def test_formatter_emits_json_with_context():
	formatter = obs_logging.JSONLogFormatter(service="commentary-api", environment="test", commit="abc")
	tokens = obs_logging.bind_context(request_id="req-1", route="/api/comment/new", client_ip="203.0.113.7")
	try:
		payload = json.loads(formatter.format(_record("http_request", status=200)))
	finally:
		obs_logging.reset_context(tokens)

	assert payload["msg"] == "http_request"
	assert payload["service"] == "commentary-api"
	assert payload["request_id"] == "req-1"
	assert payload["route"] == "/api/comment/new"
	assert payload["ip"] == "203.0.113.7"
	assert payload["status"] == 200
	assert obs_logging.current_request_id() == "unknown"


def test_sensitive_fields_are_redacted():
	formatter = obs_logging.JSONLogFormatter(service="s", environment="test", commit="c")
	payload = json.loads(
		formatter.format(_record("permission check", commenter_token="t0k", hmac="beef", author_email="a@b.c", route="/p"))
	)
	assert payload["commenter_token"] == "[redacted]"
	assert payload["hmac"] == "[redacted]"
	assert payload["author_email"] == "[redacted]"
	assert payload["route"] == "/p"


def test_long_values_are_truncated():
	value = obs_logging.sanitize_field("detail", "x" * 1000)
	assert len(value) == 257
