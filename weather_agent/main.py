# main.py
import json
import logging
import time
import uuid
from typing import Awaitable, Callable, Optional

from aiohttp import web
from aiohttp.web import Application, Request, Response
from aiohttp.web_middlewares import normalize_path_middleware

from microsoft_agents.hosting.aiohttp import (
    CloudAdapter,
    jwt_authorization_middleware,
    start_agent_process,
)
from microsoft_agents.hosting.core import AgentApplication

from .agent import AGENT_APP, BOT, CONNECTION_MANAGER
from .config import VERSION, AppConfig
from .health import healthz, livez, messages_ready, readyz
from .logs import configure_logging

logger = logging.getLogger("app")


# ------------------------------------------------------------------------------
# Middlewares
# ------------------------------------------------------------------------------
@web.middleware
async def error_middleware(request: Request, handler: Callable[[Request], Awaitable[Response]]) -> Response:
    try:
        return await handler(request)
    except web.HTTPException as http_err:
        payload = {"error": http_err.reason or "HTTP error", "status": http_err.status}
        if request.app["config"].debug:
            payload["detail"] = http_err.text or ""
        return web.json_response(payload, status=http_err.status)
    except Exception as e:
        logger.error(json.dumps({
            "event": "unhandled_exception",
            "request_id": request.get("request_id", ""),
            "path": request.path,
            "error": type(e).__name__,
        }))
        payload = {"error": "Internal server error", "status": 500}
        if request.app["config"].debug:
            payload["detail"] = str(e)
        return web.json_response(payload, status=500)


@web.middleware
async def request_logger_middleware(request: Request, handler: Callable[[Request], Awaitable[Response]]) -> Response:
    req_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
    request["request_id"] = req_id

    start = time.time()
    resp: Optional[Response] = None
    try:
        resp = await handler(request)
        resp.headers["X-Request-ID"] = req_id
        return resp
    finally:
        logger.info(json.dumps({
            "event": "access",
            "request_id": req_id,
            "method": request.method,
            "path": request.path,
            "status": resp.status if resp is not None else 500,
            "duration_ms": int((time.time() - start) * 1000),
            "remote": request.remote,
            "user_agent": request.headers.get("User-Agent", ""),
        }))


@web.middleware
async def security_headers_middleware(request: Request, handler: Callable[[Request], Awaitable[Response]]) -> Response:
    resp = await handler(request)
    resp.headers.setdefault("X-Content-Type-Options", "nosniff")
    resp.headers.setdefault("X-Frame-Options", "DENY")
    resp.headers.setdefault("Referrer-Policy", "no-referrer")
    resp.headers.pop("Server", None)
    return resp


# ------------------------------------------------------------------------------
# Handlers
# ------------------------------------------------------------------------------
async def entry_point(req: Request) -> Response:
    agent: AgentApplication = req.app["agent_app"]
    adapter: CloudAdapter = req.app["adapter"]
    return await start_agent_process(req, agent, adapter)


# ------------------------------------------------------------------------------
# API subapp
# ------------------------------------------------------------------------------
def build_api_subapp(config: AppConfig) -> Application:
    api_app = web.Application(middlewares=[jwt_authorization_middleware])
    api_app.router.add_post(config.messages_path, entry_point)
    api_app["agent_configuration"] = CONNECTION_MANAGER.get_default_connection_configuration()
    api_app["agent_app"] = AGENT_APP
    api_app["adapter"] = AGENT_APP.adapter
    return api_app


# ------------------------------------------------------------------------------
# App factory
# ------------------------------------------------------------------------------
def create_app(config: Optional[AppConfig] = None) -> Application:
    config = config or AppConfig()
    configure_logging(config.log_level)

    root_app = web.Application(
        middlewares=[
            normalize_path_middleware(append_slash=False, remove_slash=True),
            request_logger_middleware,
            error_middleware,
            security_headers_middleware,
        ],
        client_max_size=config.client_max_size_bytes(),
    )

    root_app.router.add_get("/healthz", healthz)
    root_app.router.add_get("/readyz", readyz)
    root_app.router.add_get("/livez", livez)
    # registered on the root app so the readiness GET stays outside the JWT-protected subapp
    root_app.router.add_get(f"{config.base_api}{config.messages_path}", messages_ready)

    api_app = build_api_subapp(config)
    root_app.add_subapp(config.base_api, api_app)

    root_app["config"] = config
    root_app["api_app"] = api_app
    root_app["agent_app"] = AGENT_APP
    root_app["adapter"] = AGENT_APP.adapter
    root_app["bot"] = BOT

    async def on_startup(_app: Application):
        logger.info(json.dumps({"event": "startup", "version": VERSION, "port": config.port}))

    async def on_cleanup(_app: Application):
        logger.info(json.dumps({"event": "cleanup"}))

    root_app.on_startup.append(on_startup)
    root_app.on_cleanup.append(on_cleanup)
    return root_app


if __name__ == "__main__":
    cfg = AppConfig()
    web.run_app(create_app(cfg), host=cfg.host, port=cfg.port, access_log=None)
