import json
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import uvicorn
from fastapi import FastAPI, Request, status
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.middleware.cors import CORSMiddleware

from exambank.config import logging_settings, settings
from exambank.dependencies import database
from exambank.dependencies.database import initialize_db
from exambank.routers import exam_papers, questions

# Attributes every LogRecord carries; anything else arrived through `extra=`
RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class QuestionBankLogFormatter(logging.Formatter):
    """Render `extra=` fields (paper_id, subject_identifier, counts) as key=value pairs or JSON."""

    def __init__(self, use_json: bool = False, **kwargs: Any):
        super().__init__(**kwargs)
        self.use_json = use_json

    def format(self, record: logging.LogRecord) -> str:
        fields = {k: v for k, v in vars(record).items() if k not in RECORD_ATTRS}
        if not self.use_json:
            base = super().format(record)
            return f"{base} | {' '.join(f'{k}={v}' for k, v in fields.items())}" if fields else base

        payload = {
            "timestamp": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **fields,
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def setup_logging() -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(
        QuestionBankLogFormatter(
            use_json=logging_settings.LOG_FORMAT == "json",
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        )
    )
    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(logging_settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    setup_logging()
    logging.getLogger(__name__).info(
        f"Starting exam question bank with {settings.question_store_backend} question store"
    )

    if database.sessionmanager is None:
        yield
        return

    async with initialize_db(database.sessionmanager):
        yield


app = FastAPI(title="Exam Question Bank", lifespan=lifespan)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and duration of every API request."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path == "/health":
            return await call_next(request)

        start_time = time.monotonic()
        fields: dict[str, Any] = {"method": request.method, "path": request.url.path}
        try:
            response = await call_next(request)
        except Exception:
            fields["duration_ms"] = round((time.monotonic() - start_time) * 1000, 2)
            logging.getLogger("http").exception("request failed", extra=fields)
            raise

        fields["status"] = response.status_code
        fields["duration_ms"] = round((time.monotonic() - start_time) * 1000, 2)
        logging.getLogger("http").info("request completed", extra=fields)
        return response


app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

app.include_router(questions.router)
app.include_router(exam_papers.router)


@app.get("/health", status_code=status.HTTP_200_OK)
def health() -> dict[str, str]:
    return {"status": "healthy"}


@app.get("/", status_code=status.HTTP_200_OK)
def root() -> dict[str, Any]:
    return {"success": True, "service": "exam-question-bank"}


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
