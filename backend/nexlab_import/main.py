"""FastAPI application entry point"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
import logging
from .config import settings
from .api.routes import materials_router
from .api.dependencies import get_storage_client
from .services import LocalStorageClient

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="NexLab Material Import API",
    description="Text extraction and image hosting for PDF, DOCX, PPTX and TXT course materials",
    version="1.0.0"
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(materials_router, prefix="/api")

# Serve locally stored objects when Cloudinary is not configured
if isinstance(get_storage_client(), LocalStorageClient):
    app.mount(
        settings.local_storage_base_url,
        StaticFiles(directory=settings.upload_dir),
        name="files"
    )


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "NexLab Material Import API",
        "version": "1.0.0",
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    storage = "local" if isinstance(get_storage_client(), LocalStorageClient) else "cloudinary"
    return {"status": "healthy", "storage": storage}


@app.on_event("startup")
async def startup_event():
    """Startup tasks"""
    logger.info("Starting NexLab Material Import API")
    logger.info(f"Upload directory: {settings.upload_dir}")


if __name__ == "__main__":
    import uvicorn
    import os
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(
        "nexlab_import.main:app",
        host="0.0.0.0",
        port=port,
    )
