"""SMS webhook for the appointment calendar.

Receives Twilio-style form posts on ``/sms`` and answers with TwiML.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import asynccontextmanager
from typing import Any
from xml.sax.saxutils import escape

import uvicorn
from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Form, Request
from fastapi.responses import JSONResponse, Response

from src.config.settings import Settings, ensure_runtime_dirs, load_settings, validate_settings
from src.db.sqlite_client import StoreError, ensure_day_seeded, get_connection, init_schema
from src.engine.slot_policy import booking_date, load_slot_times
from src.messaging.interpreter import MSG_STORE_DOWN, handle, normalize_command
from src.utils.health import liveness, readiness

logger = logging.getLogger(__name__)


def render_twiml(message: str) -> str:
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f"<Response><Message>{escape(message)}</Message></Response>"
    )


def configure_logging(level: str) -> None:
    """Send this service's records at ``level`` and above to a formatted root handler.

    Safe to call more than once; an already configured root handler is kept.
    """
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    resolved = getattr(logging, level, logging.INFO)
    for name in ("src", __name__):
        logging.getLogger(name).setLevel(resolved)


def create_app(settings: Settings | None = None) -> FastAPI:
    if settings is None:
        load_dotenv()
        settings = load_settings()
    configure_logging(settings.log_level)
    slot_times = load_slot_times(settings.slot_times_config_path)

    def open_connection() -> Any:
        try:
            return get_connection(settings.sqlite_db_path, settings.store_timeout_seconds)
        except Exception as exc:
            raise StoreError(f"connect failed: {exc}") from exc

    def current_booking_date() -> str:
        return booking_date(tz_name=settings.timezone, days_ahead=settings.booking_days_ahead)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        for problem in validate_settings(settings):
            logger.warning("Config: %s", problem)
        ensure_runtime_dirs(settings)
        conn = open_connection()
        try:
            init_schema(conn)
            ensure_day_seeded(conn, current_booking_date(), slot_times)
        finally:
            conn.close()
        logger.info("Serving %d daily slot(s): %s", len(slot_times), ", ".join(slot_times))
        yield

    def get_db() -> Iterator[Any]:
        conn = open_connection()
        try:
            yield conn
        finally:
            conn.close()

    app = FastAPI(title="barbershop-sms", lifespan=lifespan)
    app.state.settings = settings
    app.state.slot_times = slot_times

    @app.post("/sms")
    def sms_webhook(
        phone: str = Form(..., alias="From"),
        body: str = Form("", alias="Body"),
        conn: Any = Depends(get_db),
    ) -> Response:
        command = normalize_command(body)
        reply = handle(conn, phone, command, current_booking_date(), slot_times)
        return Response(content=render_twiml(reply), media_type="text/xml")

    @app.get("/healthz")
    def healthz() -> dict[str, Any]:
        return liveness()

    @app.get("/readyz")
    def readyz() -> JSONResponse:
        try:
            conn = open_connection()
        except StoreError:
            logger.exception("Readiness check could not open the database")
            conn = None
        try:
            status = readiness(conn)
        finally:
            if conn is not None:
                conn.close()
        return JSONResponse(status, status_code=200 if status["ok"] else 503)

    @app.exception_handler(StoreError)
    async def store_error_handler(request: Request, exc: StoreError) -> Response:
        logger.error("Store failure on %s: %s", request.url.path, exc)
        return Response(content=render_twiml(MSG_STORE_DOWN), media_type="text/xml")

    return app


def main() -> None:
    load_dotenv()
    settings = load_settings()
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
