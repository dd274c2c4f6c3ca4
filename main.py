import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.middleware.cors import CORSMiddleware

from tracker_app.config import settings
from tracker_app.database.connection import engine, Base
from tracker_app.api.v1 import track, admin
from tracker_app.api.v1.track import tracking_error

# Import models to ensure they're registered with Base
from tracker_app.models import Visitor

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)

# Create database tables
Base.metadata.create_all(bind=engine)

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Visitor tracking demo: IP geolocation, fingerprinting and an admin dashboard",
    debug=settings.debug
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """The tracking page expects the 500 envelope for bad bodies, everyone else gets 422"""
    if request.url.path == "/api/track":
        return tracking_error("Invalid tracking payload")
    return await request_validation_exception_handler(request, exc)


@app.get("/")
def read_root():
    """Root endpoint with API information"""
    return {
        "message": f"Welcome to {settings.app_name}",
        "version": settings.app_version,
        "docs": "/docs",
        "redoc": "/redoc"
    }


@app.get("/health")
def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "environment": settings.environment}


######## Include routers
app.include_router(track.router, prefix="/api")
app.include_router(admin.router, prefix="/api")
