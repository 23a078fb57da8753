"""Random identifiers for comments."""

from __future__ import annotations

import logging
import secrets

from commentary.comments.domain.exceptions import InternalError

logger = logging.getLogger(__name__)

COMMENT_ID_BYTES = 16


def random_hex(nbytes: int = COMMENT_ID_BYTES) -> str:
    """Return ``nbytes`` of OS randomness, hex encoded (two chars per byte).

    An unavailable entropy source fails the caller; nothing is truncated or
    retried here.
    """

    try:
        raw = secrets.token_bytes(nbytes)
    except (OSError, NotImplementedError) as exc:
        logger.error("cannot read random bytes: %s", exc)
        raise InternalError("identifier_generation_failed") from exc
    if len(raw) != nbytes:
        logger.error("short read from entropy source", extra={"wanted": nbytes, "got": len(raw)})
        raise InternalError("identifier_generation_failed")
    return raw.hex()
