from __future__ import annotations

import uuid

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from starlette.requests import Request
from starlette.responses import Response

from .errors import register_exception_handlers
from .logging_setup import configure_logging
from .routers.activity import router as activity_router
from .routers.auth import router as auth_router
from .routers.brands import router as brands_router
from .routers.calendars import router as calendars_router
from .routers.health import router as health_router
from .routers.live import router as live_router
from .routers.notifications import router as notifications_router
from .routers.tasks import router as tasks_router
from .routers.users import router as users_router
from .services.storage import LOCAL_URL_PREFIX
from .settings import settings

configure_logging(settings.log_level)

app = FastAPI(title="AgencyDesk API", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.frontend_url],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next) -> Response:  # type: ignore[override]
    request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-Id"] = request_id
    return response


app.mount(LOCAL_URL_PREFIX, StaticFiles(directory=settings.upload_dir, check_dir=False), name="uploads")

app.include_router(health_router)
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(brands_router)
app.include_router(calendars_router)
app.include_router(tasks_router)
app.include_router(notifications_router)
app.include_router(activity_router)
app.include_router(live_router)
