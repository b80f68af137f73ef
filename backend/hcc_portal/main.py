from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from hcc_portal.routes import admin_bookings, admin_enquiries, catering, events, metadata, portal, public, staff_rooms
from hcc_portal.services.errors import FormRejected, ServiceError
from hcc_portal.utils.config import get_settings

logging.basicConfig(level=logging.INFO)

logger = logging.getLogger(__name__)

settings = get_settings()

app = FastAPI(title="Holy Cross Centre API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.frontend_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=True,
)


@app.exception_handler(FormRejected)
async def form_rejected_handler(request: Request, exc: FormRejected) -> JSONResponse:
    content = {"success": False, "error": exc.message}
    if exc.errors:
        content["errors"] = exc.errors
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("service_error", extra={"path": request.url.path, "error": exc.message})
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.include_router(public.csrf_router, prefix="/api")
app.include_router(public.router, prefix="/api")
app.include_router(metadata.router, prefix="/api")
app.include_router(admin_bookings.router, prefix="/api")
app.include_router(admin_bookings.approval_router, prefix="/api")
app.include_router(admin_enquiries.router, prefix="/api")
app.include_router(catering.router, prefix="/api")
app.include_router(staff_rooms.router, prefix="/api")
app.include_router(portal.router, prefix="/api")
app.include_router(events.router, prefix="/api")


@app.get("/health")
def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
