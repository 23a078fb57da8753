"""Comment routes."""

from __future__ import annotations

import json

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from commentary.comments.api._errors import to_failure_response
from commentary.comments.domain.exceptions import MissingField
from commentary.comments.domain.service import ClientInfo, CommentSubmissionCoordinator, SubmissionRequest
from commentary.comments.schemas import dto

router = APIRouter(tags=["comments"])


async def get_coordinator(request: Request) -> CommentSubmissionCoordinator:
	coordinator = getattr(request.app.state, "coordinator", None)
	if coordinator is None:
		raise HTTPException(status_code=503, detail="comment_service_unavailable")
	return coordinator


def client_info(request: Request) -> ClientInfo:
	settings = getattr(request.app.state, "settings", None)
	ip = ""
	if settings is None or settings.trusted_proxy_headers:
		forwarded = request.headers.get("X-Forwarded-For", "")
		ip = forwarded.split(",", 1)[0].strip() or request.headers.get("X-Real-Ip", "").strip()
	if not ip and request.client:
		ip = request.client.host
	return ClientInfo(ip=ip, user_agent=request.headers.get("User-Agent", ""))


async def _parse_body(request: Request) -> dto.CommentNewRequest:
	try:
		return dto.CommentNewRequest.model_validate(await request.json())
	except (json.JSONDecodeError, UnicodeDecodeError, PydanticValidationError) as exc:
		raise MissingField() from exc


@router.post("/api/comment/new")
async def comment_new_endpoint(
	request: Request,
	coordinator: CommentSubmissionCoordinator = Depends(get_coordinator),
) -> JSONResponse:
	try:
		payload = await _parse_body(request)
		result = await coordinator.submit(
			SubmissionRequest(
				commenter_token=payload.commenter_token or "",
				domain=payload.domain or "",
				path=payload.path or "",
				parent_hex=payload.parent_hex or "",
				markdown=payload.markdown or "",
			),
			client_info(request),
		)
	except Exception as exc:
		return to_failure_response(exc)
	body = dto.CommentNewResponse(comment_hex=result.comment_hex, state=result.state.value, html=result.html)
	return JSONResponse(content=body.model_dump(by_alias=True))
