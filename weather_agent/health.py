from typing import Any, Dict, List, Mapping

from aiohttp import web
from aiohttp.web import Request, Response

from .config import VERSION


async def healthz(_req: Request) -> Response:
    return web.json_response({"status": "ok"})


async def livez(_req: Request) -> Response:
    return web.json_response({"status": "alive"})


async def messages_ready(_req: Request) -> Response:
    # GET on the messages path answers Playground readiness checks without JWT auth
    return web.json_response({"status": "ok", "endpoint": "messages"})


def readiness_check(app: Mapping[str, Any]) -> Dict[str, Any]:
    reasons: List[str] = []
    if app.get("agent_app") is None:
        reasons.append("agent_app is missing")
    if app.get("adapter") is None:
        reasons.append("adapter is missing")
    if app.get("bot") is None:
        reasons.append("chat client is not configured")
    return {"ready": not reasons, "reasons": reasons, "version": VERSION}


async def readyz(req: Request) -> Response:
    status = readiness_check(req.app)
    return web.json_response(status, status=200 if status["ready"] else 503)
