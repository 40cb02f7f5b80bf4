from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from unipilot.api.courses import router as courses_router
from unipilot.api.dashboard import router as dashboard_router
from unipilot.api.health import router as health_router
from unipilot.api.notes import router as notes_router
from unipilot.api.planner import router as planner_router
from unipilot.core.auth import api_key_auth_middleware
from unipilot.core.bootstrap import initialize_database
from unipilot.core.errors import register_exception_handlers, request_id_middleware
from unipilot.core.logging import configure_logging
from unipilot.core.settings import settings
from unipilot.storage.database import engine


configure_logging(settings.log_level)

app = FastAPI(title="UniPilot API", version="0.1.0")
for router in (health_router, courses_router, notes_router, dashboard_router, planner_router):
    app.include_router(router)

# Registered inner-first: the request id is assigned before the gateway key check runs.
app.middleware("http")(api_key_auth_middleware)
app.middleware("http")(request_id_middleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)
register_exception_handlers(app)


@app.on_event("startup")
async def on_startup():
    await initialize_database(engine)


@app.on_event("shutdown")
async def on_shutdown():
    await engine.dispose()
