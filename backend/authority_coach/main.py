import logging

from fastapi import FastAPI

from .settings import settings
from .routers import wizard

logging.basicConfig(
	level=settings.log_level.upper(),
	format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Topical Authority Coach API")
app.include_router(wizard.router)


@app.get("/info")
def root():
	return {"status": "ok", "gemini_configured": bool(settings.gemini_api_key)}


@app.on_event("shutdown")
async def shutdown_event():
	await wizard.close_gateway()
