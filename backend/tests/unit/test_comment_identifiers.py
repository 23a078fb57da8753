from __future__ import annotations

import string

import pytest

from commentary.comments.domain import identifiers
from commentary.comments.domain.exceptions import InternalError


def test_random_hex_is_128_bits() -> None:
    value = identifiers.random_hex()
    assert len(value) == 32
    assert set(value) <= set(string.hexdigits.lower())


def test_random_hex_has_no_duplicates() -> None:
    generated = {identifiers.random_hex() for _ in range(10_000)}
    assert len(generated) == 10_000


def test_entropy_failure_is_fatal(monkeypatch) -> None:
    def _boom(nbytes: int) -> bytes:
        raise OSError("getrandom failed")

    monkeypatch.setattr(identifiers.secrets, "token_bytes", _boom)
    with pytest.raises(InternalError) as exc:
        identifiers.random_hex()
    assert exc.value.reason == "identifier_generation_failed"
    assert exc.value.message == "Some internal error occurred."


def test_short_read_is_not_truncated(monkeypatch) -> None:
    monkeypatch.setattr(identifiers.secrets, "token_bytes", lambda nbytes: b"\x00" * (nbytes - 1))
    with pytest.raises(InternalError):
        identifiers.random_hex()
