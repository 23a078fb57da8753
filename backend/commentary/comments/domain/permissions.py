"""Signed permission checks against the parent application.

Every identified commenter is checked before a comment is stored. The request
is a form POST carrying ``requester``, ``email``, ``route``, ``permKey`` and an
``hmac`` field: the hex HMAC-SHA256 of the compact JSON object
``{"requester", "email", "route", "permKey"}`` (keys in that order) keyed with
the hex-decoded shared secret. The parent answers ``{"result": bool, "error":
str | null}``.

Any doubt denies: an absent or malformed secret stops the request from being
sent at all, and transport errors, bad statuses, undecodable bodies or a
``result`` other than ``true`` all raise :class:`PermissionDenied`.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Optional, Protocol

import httpx

from commentary.comments.domain.exceptions import PermissionDenied
from commentary.obs import metrics as obs_metrics
from commentary.settings import Settings

logger = logging.getLogger(__name__)

PERMISSION_CHECK_PATH = "/api/v1/permissions/check"


_HTML_SAFE_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def canonical_payload(*, requester: str, email: str, route: str, perm_key: str) -> bytes:
    """Bytes that get signed.

    The parent verifies against its own JSON encoder, which writes ``<``, ``>``,
    ``&`` and the U+2028/U+2029 separators as ``\\uXXXX`` escapes; the same
    escapes are applied here so signatures agree for any route or email.
    """
    document = {
        "requester": requester,
        "email": email,
        "route": route,
        "permKey": perm_key,
    }
    text = json.dumps(document, separators=(",", ":"), ensure_ascii=False)
    for char, escape in _HTML_SAFE_ESCAPES.items():
        text = text.replace(char, escape)
    return text.encode("utf-8")


def decode_secret(secret_hex: Optional[str]) -> bytes:
    """Decode the shared secret, refusing empty or non-hex values."""

    if not secret_hex or not secret_hex.strip():
        raise ValueError("shared secret is not configured")
    key = bytes.fromhex(secret_hex.strip())
    if not key:
        raise ValueError("shared secret is empty")
    return key


def sign(payload: bytes, key: bytes) -> str:
    return hmac.new(key, payload, hashlib.sha256).hexdigest()


def verify_signature(payload: bytes, signature: str, key: bytes) -> bool:
    return hmac.compare_digest(sign(payload, key), signature or "")


class Authorizer(Protocol):
    async def authorize(self, *, email: str, route: str) -> None:
        ...


@dataclass
class PermissionAuthorizer:
    """Asks the parent application whether ``email`` may comment on ``route``."""

    http: httpx.AsyncClient
    endpoint: Optional[str]
    secret_hex: Optional[str] = field(default=None, repr=False)
    requester: str = "commento"
    perm_key: str = "canComment"
    timeout: float = 3.0

    @classmethod
    def from_settings(cls, settings: Settings, http: httpx.AsyncClient) -> "PermissionAuthorizer":
        endpoint = f"{settings.parent_app_url}{PERMISSION_CHECK_PATH}" if settings.parent_app_url else None
        return cls(
            http=http,
            endpoint=endpoint,
            secret_hex=settings.parent_app_api_secret,
            requester=settings.permission_requester,
            perm_key=settings.permission_key,
            timeout=settings.permission_timeout_seconds,
        )

    async def authorize(self, *, email: str, route: str) -> None:
        try:
            key = decode_secret(self.secret_hex)
        except ValueError as exc:
            logger.error("permission check refused: %s", exc)
            obs_metrics.observe_permission_check("misconfigured")
            raise PermissionDenied() from exc
        if not self.endpoint:
            logger.error("permission check refused: parent application url is not configured")
            obs_metrics.observe_permission_check("misconfigured")
            raise PermissionDenied()

        payload = canonical_payload(requester=self.requester, email=email, route=route, perm_key=self.perm_key)
        form = {
            "requester": self.requester,
            "email": email,
            "route": route,
            "permKey": self.perm_key,
            "hmac": sign(payload, key),
        }

        start = perf_counter()
        try:
            response = await self.http.post(self.endpoint, data=form, timeout=self.timeout)
        except httpx.HTTPError as exc:
            obs_metrics.observe_permission_check("transport_error", perf_counter() - start)
            logger.warning("permission check failed: %s", exc.__class__.__name__, extra={"route": route})
            raise PermissionDenied() from exc
        elapsed = perf_counter() - start

        if not response.is_success:
            obs_metrics.observe_permission_check("bad_status", elapsed)
            logger.warning("permission check returned status %s", response.status_code, extra={"route": route})
            raise PermissionDenied()

        try:
            verdict: Any = response.json()
        except ValueError as exc:
            obs_metrics.observe_permission_check("bad_response", elapsed)
            logger.warning("permission check returned an undecodable body", extra={"route": route})
            raise PermissionDenied() from exc

        if not isinstance(verdict, dict):
            obs_metrics.observe_permission_check("bad_response", elapsed)
            logger.warning("permission check returned a non-object body", extra={"route": route})
            raise PermissionDenied()

        if verdict.get("result") is not True:
            obs_metrics.observe_permission_check("denied", elapsed)
            logger.info(
                "permission denied by parent application",
                extra={"route": route, "remote_error": verdict.get("error")},
            )
            raise PermissionDenied()

        obs_metrics.observe_permission_check("allowed", elapsed)
