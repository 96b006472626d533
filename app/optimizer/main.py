from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, Optional

import uvicorn
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.trustedhost import TrustedHostMiddleware

from app.optimizer import constants, settings
from app.optimizer.adapters.sqlite_adapter import session_sink
from app.optimizer.errors import OptimizerError
from app.optimizer.middleware import RequestContextMiddleware
from app.optimizer.providers import ProviderRegistry
from app.optimizer.response import error_response
from app.optimizer.routers import health, optimizer
from app.optimizer.services.optimizer_service import OptimizerService


logger = logging.getLogger(__name__)


def create_app(service: Optional[OptimizerService] = None) -> FastAPI:
	_configure_logging()
	if service is None:
		service = _build_service()

	@asynccontextmanager
	async def lifespan(app: FastAPI):
		service.start()
		logger.info("Optimizer started with providers: %s", sorted(service.registry.configured()) or "none")
		try:
			yield
		finally:
			service.shutdown()

	app = FastAPI(
		title=constants.APP_NAME,
		version=constants.APP_VERSION,
		lifespan=lifespan,
	)
	app.state.optimizer = service
	_register_middleware(app)
	_register_handlers(app)
	_register_routers(app)
	return app


def _configure_logging() -> None:
	logging.basicConfig(
		level=settings.log_level(),
		format="%(asctime)s %(levelname)s %(name)s: %(message)s",
	)


def _build_service() -> OptimizerService:
	return OptimizerService(
		ProviderRegistry.from_env(),
		record_sink=session_sink(settings.db_path()),
	)


def _register_middleware(app: FastAPI) -> None:
	app.add_middleware(RequestContextMiddleware)
	app.add_middleware(GZipMiddleware, minimum_size=1024)
	app.add_middleware(
		CORSMiddleware,
		allow_origins=constants.DEFAULT_CORS_ALLOW_ORIGINS,
		allow_credentials=True,
		allow_methods=["*"],
		allow_headers=["*"],
	)
	app.add_middleware(
		TrustedHostMiddleware,
		allowed_hosts=constants.DEFAULT_TRUSTED_HOSTS,
	)


def _register_routers(app: FastAPI) -> None:
	app.include_router(health.router)
	app.include_router(optimizer.router)


def _register_handlers(app: FastAPI) -> None:
	@app.exception_handler(OptimizerError)
	async def handle_optimizer_error(request: Request, exc: OptimizerError) -> JSONResponse:
		payload = error_response(
			code=exc.code,
			message=exc.message,
			request=request,
		)
		return JSONResponse(status_code=exc.status_code, content=payload)

	@app.exception_handler(HTTPException)
	async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
		code = f"http_{exc.status_code}"
		message = _exc_message(exc.detail)
		if isinstance(exc.detail, dict):
			detail_code = exc.detail.get("code")
			detail_message = exc.detail.get("message")
			if isinstance(detail_code, str) and detail_code.strip():
				code = detail_code.strip()
			if isinstance(detail_message, str) and detail_message.strip():
				message = detail_message.strip()
		payload = error_response(
			code=code,
			message=message,
			request=request,
		)
		return JSONResponse(status_code=exc.status_code, content=payload)

	@app.exception_handler(StarletteHTTPException)
	async def handle_starlette_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
		payload = error_response(
			code=f"http_{exc.status_code}",
			message=_exc_message(exc.detail),
			request=request,
		)
		return JSONResponse(status_code=exc.status_code, content=payload)

	@app.exception_handler(RequestValidationError)
	async def handle_request_validation_error(
		request: Request,
		exc: RequestValidationError,
	) -> JSONResponse:
		evidence = []
		for issue in exc.errors():
			loc = ".".join(str(part) for part in issue.get("loc", []))
			msg = issue.get("msg", "Invalid request.")
			evidence.append(f"{loc}: {msg}" if loc else msg)
		payload = error_response(
			code="validation_error",
			message="Request validation failed.",
			request=request,
			evidence=evidence,
		)
		return JSONResponse(status_code=422, content=payload)

	@app.exception_handler(Exception)
	async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
		logger.exception("Unhandled error on %s %s", request.method, request.url.path)
		payload = error_response(
			code="internal_error",
			message="Internal server error.",
			request=request,
		)
		return JSONResponse(status_code=500, content=payload)


def _exc_message(detail: Any) -> str:
	if isinstance(detail, str):
		return detail
	if detail is None:
		return "Request failed."
	return str(detail)


app = create_app()


def run() -> None:
	uvicorn.run(
		"app.optimizer.main:app",
		host=settings.host(),
		port=settings.port(),
		log_level=settings.log_level().lower(),
	)
