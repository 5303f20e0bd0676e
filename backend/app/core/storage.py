import abc
import logging
import uuid
from typing import Optional

from starlette.concurrency import run_in_threadpool
from supabase import create_client

from app.core.config import get_settings
from app.core.errors import StorageFailure
from app.core.image_processing import OUTPUT_EXTENSION

logger = logging.getLogger(__name__)

BUCKET_SCREENSHOTS = "screenshots"


def build_object_path(roast_id: uuid.UUID | str, extension: str = OUTPUT_EXTENSION) -> str:
    """Screenshot objects are keyed by the roast identifier: ``{roast_id}.jpg``."""
    return f"{roast_id}{extension}"


def get_storage_client():
    settings = get_settings()
    key = settings.supabase_service_role_key or settings.supabase_key
    if not settings.supabase_url or not key:
        raise RuntimeError("Supabase credentials are not configured")
    return create_client(settings.supabase_url, key)


def build_public_url(base_url: str, bucket: str, path: str) -> str:
    return f"{base_url.rstrip('/')}/storage/v1/object/public/{bucket}/{path}"


class BaseAssetStore(abc.ABC):
    """Immutable object container for screenshots."""

    @abc.abstractmethod
    async def upload(self, path: str, content: bytes, content_type: str) -> str:
        """Store *content* at *path* and return its public URL.

        Raises ``StorageFailure`` on any error.
        """


class SupabaseAssetStore(BaseAssetStore):
    def __init__(self, client, *, base_url: str, bucket: str = BUCKET_SCREENSHOTS) -> None:
        self._client = client
        self._base_url = base_url
        self._bucket = bucket

    @classmethod
    def from_settings(cls) -> "SupabaseAssetStore":
        settings = get_settings()
        return cls(
            get_storage_client(),
            base_url=settings.supabase_url,
            bucket=settings.supabase_screenshot_bucket,
        )

    def _upload_sync(self, path: str, content: bytes, content_type: Optional[str]) -> str:
        options = {"content-type": content_type, "upsert": "false"} if content_type else None
        try:
            result = self._client.storage.from_(self._bucket).upload(path, content, options)
        except Exception as exc:
            raise StorageFailure(f"upload of {self._bucket}/{path} failed: {exc!r}") from exc

        error = None
        if isinstance(result, dict):
            error = result.get("error")
        else:
            error = getattr(result, "error", None)

        if error:
            raise StorageFailure(f"upload of {self._bucket}/{path} failed: {error!r}")

        return build_public_url(self._base_url, self._bucket, path)

    async def upload(self, path: str, content: bytes, content_type: str) -> str:
        url = await run_in_threadpool(self._upload_sync, path, content, content_type)
        logger.info("Uploaded screenshot %s/%s (%d bytes)", self._bucket, path, len(content))
        return url


class InMemoryAssetStore(BaseAssetStore):
    """Process-local store for development without Supabase."""

    def __init__(self, *, base_url: str = "memory://screenshots") -> None:
        self._base_url = base_url
        self.objects: dict[str, tuple[bytes, str]] = {}

    async def upload(self, path: str, content: bytes, content_type: str) -> str:
        if path in self.objects:
            raise StorageFailure(f"object {path} already exists")
        self.objects[path] = (content, content_type)
        return f"{self._base_url}/{path}"
