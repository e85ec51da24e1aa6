from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from loguru import logger

# --- ADMIN ROUTES ---
from kobciye.api.v1.admin import bookings as admin_bookings
from kobciye.api.v1.admin import courses as admin_courses
from kobciye.api.v1.admin import enrollments as admin_enrollments
from kobciye.api.v1.admin import platform_settings as admin_settings
from kobciye.api.v1.admin import reports as admin_reports
from kobciye.api.v1.admin import users as admin_users

# ===== IMPORT ROUTERS =====
from kobciye.api.v1 import auth, rpc
from kobciye.api.v1.shares import appointments, notification

# --- USER ROUTES ---
from kobciye.api.v1.user import courses as user_courses
from kobciye.api.v1.user import me
from kobciye.core.logging import setup_logging
from kobciye.core.settings import settings
from kobciye.db.session import engine

# --- MIDDLEWARE ---
from kobciye.middleware.request_context import RequestContextMiddleware


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info("[App] Kobciye backend starting")

    try:
        yield
    finally:
        await engine.dispose()
        logger.info("[App] Kobciye backend stopped")


# ===== APP CONFIG =====
app = FastAPI(
    title="Kobciye",
    description="Bilingual e-learning backend: courses, credit enrollment and video progress",
    version="0.1.0",
    lifespan=lifespan,
)

# --- CORS ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_middleware(RequestContextMiddleware)
prefix = "/api/v1"

# ===== REGISTER ROUTERS =====

# --- Share ---
app.include_router(auth.router, prefix=prefix)
app.include_router(rpc.router, prefix=prefix)
app.include_router(notification.router, prefix=prefix)
app.include_router(appointments.router, prefix=prefix)

# --- USER ROUTES ---
app.include_router(me.router, prefix=prefix)
app.include_router(user_courses.router, prefix=prefix)

# --- ADMIN ROUTES ---
app.include_router(admin_courses.router, prefix=prefix)
app.include_router(admin_enrollments.router, prefix=prefix)
app.include_router(admin_users.router, prefix=prefix)
app.include_router(admin_settings.router, prefix=prefix)
app.include_router(admin_reports.router, prefix=prefix)
app.include_router(admin_bookings.router, prefix=prefix)


# ===== ROOT =====
@app.get("/")
async def health():
    return {"service": "kobciye", "status": "ok"}


if __name__ == "__main__":
    uvicorn.run("kobciye.main:app", host="0.0.0.0", port=8000, reload=True, log_level="info")
