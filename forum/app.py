"""Application factory – builds the aiohttp app, registers routes/middleware,
and runs the HTTP server."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import redis.asyncio as aioredis
from aiohttp import web

from forum.config import settings
from forum.middleware.logging_mw import logging_middleware
from forum.services import posting
from forum.services.field_store import FieldStore, build_field_store
from forum.services.thread_identity import ThreadIdentityAllocator
from forum.utils.ids import parse_numeric_id, parse_positive_id

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


def _path_id(request: web.Request, name: str) -> int:
    value = parse_numeric_id(request.match_info.get(name))
    if value is None:
        raise web.HTTPBadRequest(text=f"invalid {name}")
    return value


def _query_id(request: web.Request, name: str, default: int) -> int:
    raw = request.query.get(name)
    if raw is None:
        return default
    value = parse_numeric_id(raw)
    if value is None:
        raise web.HTTPBadRequest(text=f"invalid {name}")
    return value


async def _health_handler(request: web.Request) -> web.Response:
    """Health check endpoint for monitoring / container probes."""
    info: dict[str, Any] = {"status": "ok"}
    redis_conn: aioredis.Redis | None = request.app.get("redis")
    if redis_conn is not None:
        try:
            await redis_conn.ping()
            info["redis"] = "ok"
        except Exception:
            info["redis"] = "error"
    return web.json_response(info)


async def _create_post_handler(request: web.Request) -> web.Response:
    tid = _path_id(request, "tid")
    try:
        body = await request.json()
    except ValueError:
        raise web.HTTPBadRequest(text="body must be JSON")
    if not isinstance(body, dict):
        raise web.HTTPBadRequest(text="body must be a JSON object")

    uid = parse_positive_id(body.get("uid"))
    if uid is None:
        raise web.HTTPBadRequest(text="invalid uid")
    content = body.get("content", "")
    if not isinstance(content, str):
        raise web.HTTPBadRequest(text="content must be a string")
    anonymous = body.get("anonymous", False)
    if not isinstance(anonymous, bool):
        raise web.HTTPBadRequest(text="anonymous must be a boolean")

    record = await posting.create_post(
        request.app["field_store"],
        request.app["allocator"],
        tid=tid,
        uid=uid,
        content=content,
        anonymous=anonymous,
    )
    return web.json_response(posting.present(record, uid), status=201)


async def _list_posts_handler(request: web.Request) -> web.Response:
    tid = _path_id(request, "tid")
    offset = _query_id(request, "offset", 0)
    limit = min(_query_id(request, "limit", DEFAULT_PAGE_SIZE), MAX_PAGE_SIZE)
    if limit == 0:
        raise web.HTTPBadRequest(text="invalid limit")
    posts = await posting.list_topic_posts(
        tid, request.query.get("viewer"), offset=offset, limit=limit
    )
    return web.json_response({"tid": tid, "offset": offset, "limit": limit, "posts": posts})


async def _get_post_handler(request: web.Request) -> web.Response:
    pid = _path_id(request, "pid")
    post = await posting.get_post(pid, request.query.get("viewer"))
    if post is None:
        raise web.HTTPNotFound(text=f"post {pid} not found")
    return web.json_response(post)


async def _purge_topic_handler(request: web.Request) -> web.Response:
    tid = _path_id(request, "tid")
    removed = await posting.purge_topic(request.app["allocator"], tid)
    return web.json_response({"tid": tid, "removed": removed})


async def _user_stats_handler(request: web.Request) -> web.Response:
    uid = _path_id(request, "uid")
    count = await posting.get_post_count(request.app["field_store"], uid)
    return web.json_response({"uid": uid, "postcount": count})


def create_app(redis: aioredis.Redis | None, store: FieldStore | None = None) -> web.Application:
    """Build the web application around a field store (chosen from settings by default)."""
    if store is None:
        if redis is None:
            raise ValueError("either redis or store is required")
        store = build_field_store(redis)

    app = web.Application(middlewares=[logging_middleware])
    app["redis"] = redis
    app["field_store"] = store
    app["allocator"] = ThreadIdentityAllocator(store)

    app.router.add_get("/health", _health_handler)
    app.router.add_post("/topics/{tid}/posts", _create_post_handler)
    app.router.add_get("/topics/{tid}/posts", _list_posts_handler)
    app.router.add_delete("/topics/{tid}", _purge_topic_handler)
    app.router.add_get("/posts/{pid}", _get_post_handler)
    app.router.add_get("/users/{uid}/stats", _user_stats_handler)
    return app


async def _on_startup(app: web.Application) -> None:
    """Create tables if needed."""
    from forum.db.base import Base
    from forum.db.engine import engine

    # Import models so they register on metadata
    from forum.models.object_field import ObjectField  # noqa: F401
    from forum.models.post import Post  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ensured.")


async def _on_cleanup(app: web.Application) -> None:
    """Graceful shutdown – close pools."""
    logger.info("Shutting down…")
    redis: aioredis.Redis | None = app.get("redis")
    if redis is not None:
        await redis.aclose()

    from forum.db.engine import engine

    await engine.dispose()
    logger.info("Shutdown complete.")


async def main() -> None:
    """Entry point."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    )

    redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    app = create_app(redis)
    app.on_startup.append(_on_startup)
    app.on_cleanup.append(_on_cleanup)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host=settings.HTTP_HOST, port=settings.HTTP_PORT)
    await site.start()
    logger.info("Forum server listening on %s:%d", settings.HTTP_HOST, settings.HTTP_PORT)
    try:
        # Keep running until interrupted
        await asyncio.Event().wait()
    finally:
        await runner.cleanup()
