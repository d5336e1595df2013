import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from epicircle.core.config import settings
from epicircle.application.container import AppContainer
from epicircle.interfaces import auth_routes, pickup_routes

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# ---------------------------------------------------------
# COMPOSITION ROOT
# ---------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    print("🔄 Loading session and pickup requests...")
    container = await AppContainer.create(settings.REDIS_URL)
    app.state.container = container
    print("✅ App state ready.")
    try:
        yield
    finally:
        await container.shutdown()
        print("👋 Store closed.")


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

# Include Routers
app.include_router(auth_routes.router)
app.include_router(pickup_routes.router)


@app.get("/")
def health_check():
    status = "active" if hasattr(app.state, "container") else "degraded"
    return {"status": status, "system": "EpiCircle Pickups"}
