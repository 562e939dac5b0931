from fastapi import FastAPI
from contextlib import asynccontextmanager
from inkpost.api.home import router as home_router
from inkpost.api.posts import router as posts_router
from inkpost.api.columns import router as columns_router
from inkpost.api.comments import router as comments_router
from inkpost.api.auth import router as auth_router
from inkpost.api.about import router as about_router
from inkpost.api.deps import close_clients
from inkpost.config.settings import settings
from inkpost.utils.log import app_logger

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup logic
    if not settings.BACKEND_URL or not settings.BACKEND_ANON_KEY:
        app_logger.warning("app.backend_not_configured")
    app_logger.info("app.started", admin_enabled=settings.ADMIN_ENABLED)
    yield
    # Shutdown logic
    close_clients()
    app_logger.info("app.stopped")

app = FastAPI(title="inkpost", lifespan=lifespan)

# include routes
app.include_router(home_router)
app.include_router(posts_router)
app.include_router(columns_router)
app.include_router(comments_router)
app.include_router(auth_router)
app.include_router(about_router)
