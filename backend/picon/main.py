"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from picon import __version__
from picon.api.messages import RequestLog
from picon.api.routes import router
from picon.config import CORS_ORIGINS, PURGE_ENABLED, logger as config_logger
from picon.purge import PurgeScheduler

logging.getLogger("uvicorn").setLevel(logging.INFO)
logger = logging.getLogger("picon.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    purge = PurgeScheduler() if PURGE_ENABLED else None
    if purge:
        purge.start()
    app.state.purge = purge
    config_logger.info("picon %s started", __version__)
    yield
    if purge:
        purge.stop()
    config_logger.info("picon shutting down")


app = FastAPI(
    title="picon",
    description="Render PNG previews of uploaded images, PDFs, videos and office documents.",
    version=__version__,
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS if CORS_ORIGINS else ["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(router)


def _error_response(request: Request, status_code: int, error: str) -> JSONResponse:
    log = RequestLog(
        path=request.url.path,
        params=dict(request.query_params),
        error=error,
    )
    log.emit(logger)
    return JSONResponse(log.to_dict(), status_code=status_code)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    # A known path with the wrong method is as unmatched as an unknown path
    if exc.status_code in (404, 405):
        return _error_response(request, 404, "Not Found")
    return _error_response(request, exc.status_code, str(exc.detail))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    missing = [".".join(str(p) for p in err.get("loc", ())[1:]) for err in exc.errors()]
    return _error_response(request, 400, f"invalid request: {', '.join(m for m in missing if m) or 'bad input'}")


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s: %s", request.url.path, exc)
    return _error_response(request, 500, str(exc) or exc.__class__.__name__)


def run() -> None:
    import uvicorn
    from picon.config import HOST, PORT
    uvicorn.run("picon.main:app", host=HOST, port=PORT)


if __name__ == "__main__":
    run()
