import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import manga_redraw.routers.api as api_router
from manga_redraw.config import CORS_ORIGINS
from manga_redraw.schemas import ProcessImageResponse

logger = logging.getLogger(__name__)


def validation_message(exc: RequestValidationError) -> str:
    """First validation error as a readable sentence."""
    errors = exc.errors()
    if not errors:
        return "Invalid request"
    error = errors[0]
    message = str(error.get("msg", "Invalid request"))
    if message.startswith("Value error, "):
        return message[len("Value error, "):]
    location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
    return f"{location}: {message}" if location else message


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    message = validation_message(exc)
    logger.info("Rejected request to %s: %s", request.url.path, message)
    return JSONResponse(
        status_code=400,
        content=ProcessImageResponse(success=False, error=message).model_dump(exclude_none=True),
    )


def create_app() -> FastAPI:

    app = FastAPI(title="Manga Redraw API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.include_router(api_router.get_router(), prefix="/api")
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8000)
