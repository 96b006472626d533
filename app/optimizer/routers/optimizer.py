from __future__ import annotations

import json
from collections.abc import AsyncIterator

from fastapi import APIRouter, HTTPException, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import StreamingResponse

from app.optimizer.errors import OptimizerError
from app.optimizer.response import success_response
from app.optimizer.schemas import AnalyzeRequest, ApiEnvelope, OptimizeRequest, StreamRequest
from app.optimizer.services.optimizer_service import OptimizerService


router = APIRouter(prefix="/api/mcp", tags=["optimizer"])

_CHANNEL_POLL_S = 0.25


def _service(request: Request) -> OptimizerService:
	return request.app.state.optimizer


def _identity(request: Request) -> str:
	if request.client is not None and request.client.host:
		return request.client.host
	return "anonymous"


def _http_error(exc: OptimizerError) -> HTTPException:
	return HTTPException(
		status_code=exc.status_code,
		detail={"code": exc.code, "message": exc.message},
	)


def _encode_sse(event: str, data: dict) -> str:
	payload = json.dumps(data, ensure_ascii=False)
	return f"event: {event}\ndata: {payload}\n\n"


@router.get("/models", response_model=ApiEnvelope)
def models(request: Request):
	return success_response(
		request=request,
		data={"models": _service(request).list_models()},
	)


@router.post("/analyze", response_model=ApiEnvelope)
def analyze(request: Request, payload: AnalyzeRequest):
	try:
		result = _service(request).analyze(
			payload.profile_data,
			payload.model_id,
			identity=_identity(request),
		)
	except OptimizerError as exc:
		raise _http_error(exc) from exc
	return success_response(
		request=request,
		data={"analysis": result.model_dump(by_alias=True)},
	)


@router.post("/optimize", response_model=ApiEnvelope)
def optimize(request: Request, payload: OptimizeRequest):
	try:
		result = _service(request).optimize(
			payload.profile_data,
			payload.mode,
			payload.model_id,
			payload.preferences,
			identity=_identity(request),
		)
	except OptimizerError as exc:
		raise _http_error(exc) from exc
	return success_response(
		request=request,
		data={"optimization": result.model_dump(by_alias=True)},
	)


@router.post("/stream")
async def stream(request: Request, payload: StreamRequest):
	try:
		channel = _service(request).start_streaming(
			payload.session_id,
			payload.profile_data,
			payload.kind,
			payload.mode,
			payload.model_id,
			payload.preferences,
			identity=_identity(request),
		)
	except OptimizerError as exc:
		raise _http_error(exc) from exc

	async def generate() -> AsyncIterator[str]:
		try:
			while True:
				event = await run_in_threadpool(channel.get, _CHANNEL_POLL_S)
				if event is None:
					if await request.is_disconnected():
						return
					continue
				yield _encode_sse(event.event, event.data)
				if event.terminal:
					return
		finally:
			# Closing the channel is how the pipeline learns the client left.
			channel.close()

	return StreamingResponse(
		generate(),
		media_type="text/event-stream",
		headers={
			"Cache-Control": "no-cache",
			"Connection": "keep-alive",
			"X-Accel-Buffering": "no",
			"X-Session-ID": channel.session_id,
		},
	)


@router.get("/status/{session_id}", response_model=ApiEnvelope)
def status(request: Request, session_id: str):
	try:
		data = _service(request).poll_status(session_id)
	except OptimizerError as exc:
		raise _http_error(exc) from exc
	return success_response(request=request, data=data)
