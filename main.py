import logging
from contextlib import asynccontextmanager
from datetime import datetime
from json import JSONDecodeError
from pathlib import Path

import pydantic
from fastapi import Depends, FastAPI, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from starlette.concurrency import run_in_threadpool

from config import settings
from contact_store import ContactStore
from db_models import FinalResponse, IdentifyRequest
from db_setup import init_db
from errors import AppError, IdentityError, ValidationError, app_error_handler
from resolver import IdentityResolver

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

INDEX_PAGE = Path(__file__).resolve().parent / "static" / "index.html"

ENDPOINTS = [
    {"path": "/", "method": "GET", "description": "Frontend interface"},
    {"path": "/identify", "method": "POST", "description": "Contact identification"},
    {"path": "/health", "method": "GET", "description": "Health check"},
    {"path": "/debug", "method": "GET", "description": "Debug information"},
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db(settings.DATABASE_PATH)
    logger.info("Starting %s", settings.APP_NAME)
    yield
    logger.info("Shutting down %s", settings.APP_NAME)


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    lifespan=lifespan,
)
app.add_exception_handler(AppError, app_error_handler)


def get_resolver() -> IdentityResolver:
    store = ContactStore(settings.DATABASE_PATH, immediate=settings.IMMEDIATE_TRANSACTIONS)
    return IdentityResolver(store)


@app.get("/", response_class=HTMLResponse)
async def root():
    return HTMLResponse(INDEX_PAGE.read_text(encoding="utf-8"))


@app.get("/view-contacts")
async def view_contacts():
    return RedirectResponse("/")


@app.get("/health")
async def health():
    return {"status": "OK"}


@app.get("/debug")
async def debug():
    return {
        "status": "OK",
        "time": datetime.now().isoformat(),
        "endpoints": ENDPOINTS,
        "environment": {
            "appEnv": settings.APP_ENV,
            "port": settings.PORT,
        },
    }


async def read_identify_request(request: Request) -> IdentifyRequest:
    content_type = request.headers.get("content-type", "")
    if "application/json" not in content_type:
        logger.warning("Invalid content type: %s", content_type or None)
        raise AppError(
            415, "unsupported_media_type",
            "Unsupported Media Type. Content-Type must be application/json",
        )

    try:
        body = await request.json()
    except (JSONDecodeError, UnicodeDecodeError):
        body = None
    if not body:
        logger.warning("Empty request body")
        raise AppError(400, "empty_body", "Request body is empty")
    if not isinstance(body, dict):
        raise AppError(400, "invalid_body", "Request body must be a JSON object")

    try:
        return IdentifyRequest(**body)
    except pydantic.ValidationError as exc:
        raise AppError(
            400, "invalid_body", "Request body has invalid fields",
            {"fields": [".".join(str(part) for part in err["loc"]) for err in exc.errors()]},
        )


@app.post("/identify", response_model=FinalResponse)
async def identify(request: Request, resolver: IdentityResolver = Depends(get_resolver)):
    payload = await read_identify_request(request)
    logger.info("Received identify request: %s", payload.model_dump())

    try:
        identity = await run_in_threadpool(resolver.resolve, payload.email, payload.phoneNumber)
    except ValidationError as exc:
        logger.warning("Missing required fields")
        raise AppError(400, "missing_identity", str(exc))
    except IdentityError:
        logger.exception("Error processing identify request")
        raise AppError(500, "internal_error", "Internal server error")

    response = FinalResponse(contact=identity)
    logger.info("Sending response: %s", response.model_dump())
    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
