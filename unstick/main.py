from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from .api import health, unstick
from .config import settings
from .logging_config import setup_logging
from .middleware import RequestLoggingMiddleware

setup_logging()

# Create FastAPI app
app = FastAPI(
    title="Unstick API",
    description="Diagnose and clear stuck wallet nonces",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(RequestLoggingMiddleware)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(unstick.router, tags=["Unstick"])


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "Unstick API",
        "version": "0.1.0",
        "description": "Diagnose and clear stuck wallet nonces",
        "docs": "/docs",
        "health": "/healthz"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "unstick.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
