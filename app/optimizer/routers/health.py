from __future__ import annotations

from fastapi import APIRouter, Request

from app.optimizer import constants
from app.optimizer.response import now_iso


router = APIRouter(tags=["health"])


@router.get("/health")
def health(request: Request):
	service = request.app.state.optimizer
	configured = service.registry.configured()
	return {
		"status": "healthy",
		"timestamp": now_iso(),
		"version": constants.APP_VERSION,
		"models": [provider for provider in constants.PROVIDER_PRIORITY if provider in configured],
	}
