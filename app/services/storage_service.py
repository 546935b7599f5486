"""
Storage Service
Supabase Storage integration for certificate PDFs
"""

from uuid import uuid4

import httpx
import structlog
from fastapi import HTTPException, status
from app.config import settings

logger = structlog.get_logger(__name__)


class StorageService:
    """Supabase Storage helper"""

    @staticmethod
    def _ensure_config():
        if not settings.SUPABASE_URL or not settings.SUPABASE_KEY:
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Supabase Storage is not configured"
            )

    @staticmethod
    async def upload_bytes(path: str, content: bytes, content_type: str) -> str:
        StorageService._ensure_config()

        base = settings.SUPABASE_URL.rstrip("/")
        bucket = settings.STORAGE_BUCKET
        url = f"{base}/storage/v1/object/{bucket}/{path}"

        headers = {
            "Authorization": f"Bearer {settings.SUPABASE_KEY}",
            "apikey": settings.SUPABASE_KEY,
            "Content-Type": content_type or "application/octet-stream",
            "x-upsert": "true"
        }

        async with httpx.AsyncClient(timeout=30) as client:
            resp = await client.post(url, headers=headers, content=content)

        if resp.status_code not in (200, 201):
            logger.error("storage_upload_failed", path=path, status=resp.status_code)
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail=f"Storage upload failed: {resp.text}"
            )

        logger.info("storage_uploaded", path=path, size=len(content))
        return f"{base}/storage/v1/object/public/{bucket}/{path}"

    @staticmethod
    async def put(content: bytes, prefix: str = "certificates", suffix: str = ".pdf",
                  content_type: str = "application/pdf") -> str:
        """Store bytes under a fresh name and return the public URL"""
        path = f"{prefix}/{uuid4().hex}{suffix}"
        return await StorageService.upload_bytes(path, content, content_type)


# Create singleton instance
storage_service = StorageService()
