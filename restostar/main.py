from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from restostar.core.config import get_settings
from restostar.core.errors import RestostarError
from restostar.routers.auth import router as auth_router
from restostar.routers.health import router as health_router
from restostar.routers.restaurants import router as restaurants_router
from restostar.routers.coupons import router as coupons_router
from restostar.routers.reviews import router as reviews_router
from restostar.routers.insights import router as insights_router

settings = get_settings()
logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.APP_NAME,
    description="Restostar API - QR review funnel, customer recovery coupons and feedback insights for restaurants.",
    version="0.1.0",
)


@app.exception_handler(RestostarError)
async def domain_exception_handler(request: Request, exc: RestostarError):
    """Expected failures: validation, authorization, conflicts, upstream errors."""
    if exc.status_code >= 500:
        logger.warning(f"{exc.error}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error,
            "message": exc.message,
            "request_id": request.headers.get("X-Request-ID"),
        }
    )


# Global exception handler for unhandled errors
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Handle unexpected server errors with structured response."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again later.",
            "request_id": request.headers.get("X-Request-ID"),
        }
    )

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(auth_router, prefix="/api")
app.include_router(restaurants_router, prefix="/api")
app.include_router(coupons_router, prefix="/api")
app.include_router(reviews_router, prefix="/api")
app.include_router(insights_router, prefix="/api")


@app.get("/")
def read_root():
    return {
        "message": "Welcome to Restostar API",
        "docs": "/docs",
        "health": "/health"
    }
