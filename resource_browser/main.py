from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from resource_browser.core.config import settings
from resource_browser.core.http_logging import install_request_context
from resource_browser.api.admin.router import router as admin_router
from resource_browser.db.session import Base
from resource_browser.services.resource_registry import get_registry

@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    # Host models live on db.session.Base in the modules named by RESOURCE_MODULES.
    get_registry().discover_modules(Base, settings.resource_modules_list)
    yield

app = FastAPI(title=settings.APP_NAME, version="0.1.0", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
install_request_context(app)

app.include_router(admin_router, prefix="/api/admin")

@app.get("/health")
def health():
    return {"status": "ok"}
