import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from schoolops.api.v1.classes.router import router as classes_router
from schoolops.api.v1.exams.router import (
    class_exams_router,
    exam_types_router,
    marks_router,
)
from schoolops.api.v1.fees.router import router as fees_router
from schoolops.api.v1.promotions.router import router as promotions_router
from schoolops.api.v1.sessions.router import router as sessions_router
from schoolops.api.v1.students.router import router as students_router
from schoolops.api.v1.teachers.router import router as teachers_router
from schoolops.core.config import settings
from schoolops.core.enums import ErrorKind
from schoolops.core.schemas import ErrorEnvelope, error_kind_for_status
from schoolops.db.session import init_models

logger = logging.getLogger(__name__)


def _error_response(status_code: int, message: str, headers=None) -> JSONResponse:
    body = ErrorEnvelope(message=message, error_kind=error_kind_for_status(status_code))
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"), headers=headers)


def _validation_message(exc: RequestValidationError) -> str:
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        msg = err.get("msg", "Invalid value")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "Invalid request"


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.create_tables:
        logger.info("Creating database tables...")
        await init_models()
    yield


def create_app() -> FastAPI:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    app = FastAPI(title="School Operations Backend", lifespan=lifespan)

    origins = [o.strip() for o in (settings.cors_origins or "*").split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Every error leaves the service as {data: null, message, error_kind}.
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
        return _error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error_response(422, _validation_message(exc))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        body = ErrorEnvelope(message="Internal server error", error_kind=ErrorKind.UNKNOWN)
        return JSONResponse(status_code=500, content=body.model_dump(mode="json"))

    # Routers
    app.include_router(sessions_router)
    app.include_router(teachers_router)
    app.include_router(classes_router)
    app.include_router(students_router)
    app.include_router(fees_router)
    app.include_router(promotions_router)
    app.include_router(exam_types_router)
    app.include_router(class_exams_router)
    app.include_router(marks_router)

    return app


app = create_app()
