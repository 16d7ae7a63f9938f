import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, Response
from sqlalchemy.exc import OperationalError
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .core.config import API_PREFIX, CORS_ORIGINS, LOG_LEVEL
from .db import Base, engine
from .routes import addons, admin, auth, users

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="AddonHub API", version=__version__)

_LOCATION_SECTIONS = {"body", "query", "path", "header"}


def _format_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    first = errors[0]
    location = [
        str(part)
        for index, part in enumerate(first.get("loc") or ())
        if not (index == 0 and part in _LOCATION_SECTIONS)
    ]
    message = str(first.get("msg") or "Invalid value")
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]
    field = ".".join(location)
    return f"{field}: {message}" if field else message


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"error": _format_validation_error(exc)})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(GZipMiddleware, minimum_size=1000)


@app.on_event("startup")
def on_startup() -> None:
    try:
        Base.metadata.create_all(bind=engine)
    except OperationalError as exc:
        # Two workers may race to create the same table.
        if "already exists" not in str(exc).lower():
            raise
    logger.info("AddonHub API %s ready (prefix=%r)", __version__, API_PREFIX or "/")


@app.get("/health")
def health_check():
    return {"status": "ok", "version": __version__}


@app.head("/health")
def health_check_head():
    return Response(status_code=200)


app.include_router(auth.router, prefix=f"{API_PREFIX}/auth", tags=["auth"])
app.include_router(addons.router, prefix=f"{API_PREFIX}/addons", tags=["addons"])
app.include_router(users.router, prefix=f"{API_PREFIX}/users", tags=["users"])
app.include_router(admin.router, prefix=f"{API_PREFIX}/admin", tags=["admin"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("addonhub.main:app", host="0.0.0.0", port=8000, reload=True)
