"""
DTH Store API.

Usage:
  uvicorn dthstore.main:app
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .auth import NotAuthenticated
from .config import settings
from .runtime import close_runtime, get_runtime, init_runtime
from .routes.admin import router as admin_router
from .routes.public import router as public_router
from .routes.webhooks import router as webhooks_router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

app = FastAPI(title="DTH Store API", version="0.3.0")
app.include_router(public_router)
app.include_router(admin_router)
app.include_router(webhooks_router)


@app.exception_handler(NotAuthenticated)
async def _not_authenticated(request: Request, exc: NotAuthenticated):
    return JSONResponse(status_code=401, content={"detail": "Not authenticated"})


@app.on_event("startup")
async def _startup():
    await init_runtime()


@app.on_event("shutdown")
async def _shutdown():
    await close_runtime()


@app.get("/health")
async def health():
    runtime = await get_runtime()
    backend = runtime.leads.backend
    return {
        "ok": True,
        "service": settings.service_name,
        "env": settings.env,
        "leads_backend": backend.describe() if backend else {"kind": "none"},
    }
