import logging
from typing import Any

import sentry_sdk
from fastapi import FastAPI, Request
from starlette.concurrency import run_in_threadpool

from viewfn._call import error_response, respond
from viewfn._common import CallConfig, __version__

logger = logging.getLogger(__name__)

CALL_FUNCTION_ROUTES = ("/call_function", "/api/call_function")


def create_app(config: CallConfig | None = None) -> FastAPI:
    """
    Builds the HTTP surface. Call outcomes are never signaled through the status code: every call answers 200 with
    `{"details": ..., "error": bool}`.
    """
    call_config = config or CallConfig.from_env()
    app = FastAPI(title="viewfn", version=__version__)

    async def call_function(request: Request) -> dict[str, Any]:
        try:
            payload = await request.json()
        except ValueError as e:
            return error_response(f"Request body is not valid JSON: {e}")

        try:
            # the tool invocation blocks, keep it off the event loop
            return await run_in_threadpool(respond, payload, call_config)
        except Exception as e:
            logger.exception("Unexpected error while calling view function")
            sentry_sdk.capture_exception(e)
            return error_response(str(e))

    for path in CALL_FUNCTION_ROUTES:
        app.add_api_route(path, call_function, methods=["POST"])

    @app.get("/healthz")
    def healthz() -> dict[str, Any]:
        return {"ok": True, "version": __version__}

    return app
