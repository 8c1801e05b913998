import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.api import routes
from app.core.canned import canned
from app.core.language import DEFAULT_LANGUAGE
from app.core.settings import SETTINGS
from app.core.sweeper import PeriodicSweeper

logging.basicConfig(
    level=SETTINGS.log_level,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
)
logger = logging.getLogger("tantsaha-chatbot")

app = FastAPI(title="TantsahaMarket Chat", version="v1")
app.include_router(routes.router)


def build_sweeper() -> PeriodicSweeper:
    return PeriodicSweeper(
        SETTINGS.sweep_interval_sec,
        [
            ("sessions", routes.session_store),
            ("ratelimit", routes.rate_limiter),
            ("faq", routes.faq_cache),
        ],
    )


@app.on_event("startup")
async def on_startup() -> None:
    if SETTINGS.sweep_interval_sec <= 0:
        return
    sweeper = build_sweeper()
    sweeper.start()
    app.state.sweeper = sweeper
    logger.info("Background sweeper started interval=%ss", SETTINGS.sweep_interval_sec)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    sweeper = getattr(app.state, "sweeper", None)
    if sweeper is not None:
        await sweeper.stop()


@app.exception_handler(Exception)
async def handle_unhandled_exception(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"error": canned("fallback", DEFAULT_LANGUAGE), "fallback": True},
        headers={"Access-Control-Allow-Origin": SETTINGS.cors_allow_origin},
    )
