import logging

from fastapi import FastAPI

from .db import Base, engine
from .services import GREETINGS, build_services
from .settings import settings
from .routers import ask, health

logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
log = logging.getLogger("askdora")

app = FastAPI(title="Ask Dora API")
app.include_router(health.router)
app.include_router(ask.router)


@app.on_event("startup")
async def startup_event():
	# Initialize DB schema
	Base.metadata.create_all(bind=engine)
	app.state.services = build_services()
	# Greeting audio is made in the background; startup does not wait for it
	if settings.warm_greetings:
		app.state.warmup_task = app.state.services.audio_cache.warm_all_detached(GREETINGS)
	log.info("Ask Dora ready (history_turns=%d, rate_limit=%d/%ss)", settings.history_turns, settings.rate_limit_requests, settings.rate_limit_window_seconds)


@app.on_event("shutdown")
async def shutdown_event():
	task = getattr(app.state, "warmup_task", None)
	if task is not None and not task.done():
		task.cancel()
	await app.state.services.aclose()
