"""Observability package bootstrap."""

from __future__ import annotations

from fastapi import FastAPI

from commentary.obs import logging as obs_logging
from commentary.obs import middleware
from commentary.settings import Settings


def init(app: FastAPI, settings: Settings) -> None:
	if not settings.obs_enabled:
		return
	obs_logging.configure_logging(settings)
	middleware.install(app)


__all__ = ["init"]
