"""
app/api/routers package marker.
"""

from app.api.routers.upload_ingestion import router as upload_ingestion_router

__all__ = [
    "upload_ingestion_router",
]
