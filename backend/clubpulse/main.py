import logging
import time
import uuid
from asyncio import CancelledError, create_task, sleep
from contextlib import asynccontextmanager, suppress

from fastapi import FastAPI, Request, Depends
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import get_settings
from .core.events import broadcaster, ADMIN_CHANNEL
from .core.logging import init_logging
from .db.database import ensure_schema, get_db
from .routers import queue, thresholds, logs, reports, cron, webhooks
from .services.queue_service import status_counts

KEEPALIVE_SECONDS = 15


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_logging(get_settings().log_level)
    ensure_schema()

    async def _keepalive():
        while True:
            broadcaster.keepalive()
            await sleep(KEEPALIVE_SECONDS)
    ka_task = create_task(_keepalive())
    yield
    ka_task.cancel()
    with suppress(CancelledError):
        await ka_task


app = FastAPI(title="ClubPulse", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(queue.router, prefix="/api/queue", tags=["queue"])
app.include_router(thresholds.router, prefix="/api/thresholds", tags=["thresholds"])
app.include_router(logs.router, prefix="/api/logs", tags=["logs"])
app.include_router(reports.router, prefix="/api", tags=["reports"])
app.include_router(cron.router, prefix="/api/cron", tags=["cron"])
app.include_router(webhooks.router, prefix="/api/webhooks", tags=["webhooks"])


@app.exception_handler(StarletteHTTPException)
async def http_error(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": str(exc.detail)},
                        headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_error(request: Request, exc: RequestValidationError):
    errors = [{"loc": e.get("loc"), "msg": e.get("msg")} for e in exc.errors()]
    return JSONResponse(status_code=400, content=jsonable_encoder(
        {"success": False, "message": "Invalid request.", "errors": errors}))


@app.get("/health")
def health(db: Session = Depends(get_db)):
    try:
        counts = status_counts(db)
    except SQLAlchemyError:
        logging.getLogger(__name__).exception("health_db_failed")
        return JSONResponse(status_code=503, content={"status": "degraded", "queue": None})
    return {"status": "ok", "queue": counts, "subscribers": broadcaster.subscriber_count()}


@app.middleware("http")
async def timing_logger(request: Request, call_next):
    trace_id = request.headers.get("X-Trace-Id", str(uuid.uuid4())[:8])
    start = time.perf_counter()
    try:
        response = await call_next(request)
        duration = (time.perf_counter()-start)*1000
        logging.getLogger().info(
            f"{request.method} {request.url.path} {response.status_code} {duration:.1f}ms",
            extra={"trace_id": trace_id, "method": request.method, "path": request.url.path, "status": response.status_code, "duration_ms": round(duration,1)}
        )
        response.headers['X-Trace-Id'] = trace_id
        return response
    except Exception as exc:  # pragma: no cover
        duration = (time.perf_counter()-start)*1000
        logging.getLogger().error(
            f"ERR {request.method} {request.url.path} {type(exc).__name__}",
            exc_info=exc,
            extra={"trace_id": trace_id, "method": request.method, "path": request.url.path, "status": 500, "duration_ms": round(duration,1)}
        )
        return JSONResponse(status_code=500, content={"success": False, "message": "Internal Server Error", "trace_id": trace_id})


@app.get('/api/events')
async def sse_events(request: Request, channel: str = ADMIN_CHANNEL):  # pragma: no cover (streaming)
    async def event_stream():
        async for msg in broadcaster.subscribe(channel):
            if await request.is_disconnected():
                break
            yield msg
    return StreamingResponse(event_stream(), media_type='text/event-stream')
