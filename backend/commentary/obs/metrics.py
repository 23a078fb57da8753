"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Histogram

REQUEST_COUNTER = Counter(
	"commentary_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"commentary_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

COMMENTS_CREATED = Counter(
	"commentary_comments_created_total",
	"Comments persisted, by initial moderation state",
	["state"],
)

SUBMISSIONS_REJECTED = Counter(
	"commentary_submissions_rejected_total",
	"Comment submissions rejected before persistence",
	["kind", "reason"],
)

PERMISSION_CHECKS = Counter(
	"commentary_permission_checks_total",
	"Outbound permission checks against the parent application",
	["outcome"],
)

PERMISSION_LATENCY = Histogram(
	"commentary_permission_check_duration_seconds",
	"Latency of outbound permission checks",
	buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 3.0, 5.0),
)

SPAM_CHECKS = Counter(
	"commentary_spam_checks_total",
	"Spam classifier verdicts",
	["verdict"],
)

PAGE_ENSURE_FAILURES = Counter(
	"commentary_page_ensure_failures_total",
	"Comments persisted whose page record could not be ensured",
)

NOTIFICATIONS = Counter(
	"commentary_notifications_total",
	"Comment notifications by stage and outcome",
	["stage", "outcome"],
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def inc_comment_created(state: str) -> None:
	COMMENTS_CREATED.labels(state=state).inc()


def inc_submission_rejected(kind: str, reason: str) -> None:
	SUBMISSIONS_REJECTED.labels(kind=kind, reason=reason).inc()


def observe_permission_check(outcome: str, elapsed_seconds: float | None = None) -> None:
	PERMISSION_CHECKS.labels(outcome=outcome).inc()
	if elapsed_seconds is not None:
		PERMISSION_LATENCY.observe(elapsed_seconds)


def inc_spam_check(verdict: str) -> None:
	SPAM_CHECKS.labels(verdict=verdict).inc()


def inc_page_ensure_failure() -> None:
	PAGE_ENSURE_FAILURES.inc()


def inc_notification(stage: str, outcome: str) -> None:
	NOTIFICATIONS.labels(stage=stage, outcome=outcome).inc()
