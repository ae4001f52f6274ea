from __future__ import annotations

from pathlib import Path
from typing import Dict

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text

from app.core.assets.api.v1.routes_assets import router as assets_router
from app.core.config import settings
from app.core.exports.api.v1.routes_exports import router as exports_router
from app.core.styles.api.v1.routes_styles import router as styles_router
from app.database.session import SessionLocal
from app.response import StandardResponse, make_error_response, make_success_response
from app.response.response import APIError
from app.utils.redis_client import get_redis
from carekit_bg_worker.celery_app import celery_app


app = FastAPI()
try:
    uploads_dir = Path(settings.uploads_dir).resolve()
    uploads_dir.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=str(uploads_dir)), name="uploads")
except RuntimeError:
    pass


@app.exception_handler(APIError)
async def api_error_handler(
    request: Request,
    exc: APIError,
) -> JSONResponse:
    response: StandardResponse = make_error_response(
        code=exc.code,
        http_code=exc.http_code,
        message=exc.message,
        details=exc.details,
        fields=exc.fields,
    )
    return JSONResponse(
        status_code=exc.http_code,
        content=jsonable_encoder(response),
    )


app.title = "CareKit API"
app.version = "1.0.0"


@app.get("/", response_model=StandardResponse, include_in_schema=False)
def root() -> StandardResponse:
    checks: Dict[str, bool] = {"api": True}

    db = SessionLocal()
    try:
        db.execute(text("SELECT 1"))
        checks["database"] = True
    except Exception:
        checks["database"] = False
    finally:
        db.close()

    try:
        get_redis().ping()
        checks["redis"] = True
    except Exception:
        checks["redis"] = False

    try:
        checks["worker"] = bool(celery_app.control.ping(timeout=0.5))
    except Exception:
        checks["worker"] = False

    return make_success_response(result=checks)


app.include_router(assets_router, prefix="/api/v1")
app.include_router(styles_router, prefix="/api/v1")
app.include_router(exports_router, prefix="/api/v1")


__all__ = ["app"]
