from __future__ import annotations

from fastapi import FastAPI

from xidach.api.errors import register_error_handlers
from xidach.api.sessions import router as sessions_router
from xidach.api.storage import router as storage_router
from xidach.config import get_settings
from xidach.logging import setup_logging

settings = get_settings()
setup_logging(settings.log_dir, settings.log_level)

app = FastAPI(title=settings.api_title)
app.include_router(sessions_router)
app.include_router(storage_router)
register_error_handlers(app)


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
