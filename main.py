from contextlib import asynccontextmanager
import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from repairhub.config import settings
from repairhub.db import db
from repairhub.middleware import RequestGateMiddleware

# Configure logging
logging.basicConfig(level=settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

STATIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "repairhub", "static")

@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        await db.connect()
        await db.ensure_indexes()
        logger.info(f"Connected to MongoDB database: {settings.MONGODB_NAME}")
    except Exception as e:
        logger.error(f"Startup failed: {str(e)}")
        raise

    if settings.DEV_BYPASS_TOKEN and not settings.is_production:
        logger.warning("DEV_BYPASS_TOKEN is set - the request gate will let it through")

    logger.info("Registered routes:")
    for route in app.routes:
        if hasattr(route, 'path') and hasattr(route, 'methods'):
            methods = getattr(route, 'methods', set())
            logger.info(f"  {', '.join(sorted(methods))} {route.path}")

    yield

    try:
        await db.close()
        logger.info("Database connection closed.")
    except Exception as e:
        logger.error(f"Error closing database connection: {str(e)}")

app = FastAPI(
    title="RepairHub API",
    description="Device repair marketplace: customers post repairs, technicians claim and fix them",
    version="1.0.0",
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    lifespan=lifespan,
)

app.add_middleware(RequestGateMiddleware)
app.mount("/static", StaticFiles(directory=STATIC_DIR), name="static")

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail
    if isinstance(detail, dict):
        detail = detail.get("error") or str(detail)
    return JSONResponse({"error": detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg")
    else:
        message = "Invalid request"
    return JSONResponse({"error": message}, status_code=400)

@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {str(exc)}", exc_info=exc)
    return JSONResponse({"error": "Internal server error"}, status_code=500)

# Import and include routers AFTER app creation and middleware setup
from repairhub.routes.auth import router as auth_router
from repairhub.routes.avatar import router as avatar_router
from repairhub.routes.repairs import router as repairs_router
from repairhub.routes.messages import router as messages_router
from repairhub.routes.pages import router as pages_router

app.include_router(auth_router, prefix="/api/auth")
app.include_router(avatar_router, prefix="/api/avatar")
app.include_router(repairs_router, prefix="/api/repairs")
app.include_router(messages_router, prefix="/api/messages")
app.include_router(pages_router)

@app.get("/api/health")
async def health():
    return {"status": "ok"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=not settings.is_production,
        log_level=settings.LOG_LEVEL.lower()
    )
