"""Dependency injection for API routes"""
from ..config import settings
from ..services import (
    CloudinaryStorageClient,
    ImageOptimizer,
    ImageUploadOrchestrator,
    LocalStorageClient,
    MaterialImportService,
    ObjectStorageClient,
    OriginalFileService,
)


# Singleton instances
_storage_client = None
_image_optimizer = None
_upload_orchestrator = None
_original_file_service = None
_material_import_service = None


def get_storage_client() -> ObjectStorageClient:
    """Cloudinary when credentials are set, local disk otherwise"""
    global _storage_client
    if _storage_client is None:
        cloudinary_client = CloudinaryStorageClient(
            cloud_name=settings.cloudinary_cloud_name,
            api_key=settings.cloudinary_api_key,
            api_secret=settings.cloudinary_api_secret,
            folder=settings.cloudinary_folder
        )
        if cloudinary_client.is_configured:
            _storage_client = cloudinary_client
        else:
            _storage_client = LocalStorageClient(
                root_dir=settings.upload_dir,
                base_url=settings.local_storage_base_url
            )
    return _storage_client


def get_image_optimizer() -> ImageOptimizer:
    """Get ImageOptimizer singleton"""
    global _image_optimizer
    if _image_optimizer is None:
        _image_optimizer = ImageOptimizer()
    return _image_optimizer


def get_upload_orchestrator() -> ImageUploadOrchestrator:
    """Get ImageUploadOrchestrator singleton"""
    global _upload_orchestrator
    if _upload_orchestrator is None:
        _upload_orchestrator = ImageUploadOrchestrator(
            storage=get_storage_client(),
            optimizer=get_image_optimizer()
        )
    return _upload_orchestrator


def get_original_file_service() -> OriginalFileService:
    """Get OriginalFileService singleton"""
    global _original_file_service
    if _original_file_service is None:
        _original_file_service = OriginalFileService(storage=get_storage_client())
    return _original_file_service


def get_material_import_service() -> MaterialImportService:
    """Get MaterialImportService singleton"""
    global _material_import_service
    if _material_import_service is None:
        _material_import_service = MaterialImportService(
            uploader=get_upload_orchestrator(),
            original_files=get_original_file_service()
        )
    return _material_import_service
