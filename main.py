"""
AWS Cost Analyzer Backend
FastAPI application running LLM-driven AWS cost investigations
"""

from fastapi import FastAPI
from contextlib import asynccontextmanager
import uvicorn
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Import API routers
from cost_analyzer.api import tools_router, analysis_router
from cost_analyzer.api.models import HealthResponse

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    logger.info("Starting AWS Cost Analyzer backend...")
    yield
    logger.info("Shutting down AWS Cost Analyzer backend...")

app = FastAPI(
    title="AWS Cost Analyzer API",
    description="Plans, runs and reports LLM-driven AWS cost investigations",
    version="1.0.0",
    lifespan=lifespan
)

@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "AWS Cost Analyzer API",
        "version": "1.0.0",
        "status": "running"
    }

@app.get("/api/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    return HealthResponse(
        status="healthy",
        services={
            "api": "running",
        }
    )

# Include API routers
app.include_router(tools_router)
app.include_router(analysis_router)

if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
