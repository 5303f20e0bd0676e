"""Roast pipeline: URL gate -> capture -> {upload, critique} -> one record.

The commit step runs the upload and the critique side by side and waits for
both. A record is inserted only when both succeeded. Neither branch is
cancelled when the other fails, and nothing is rolled back: an upload that
succeeded next to a failed critique stays in the bucket as an orphan and is
logged with its path so it can be swept later.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, cast

from app.core.errors import GenerationFailure, RoastError, StorageFailure
from app.core.image_processing import OUTPUT_CONTENT_TYPE, ProcessedImage
from app.core.storage import BaseAssetStore, build_object_path
from app.schemas.roast import RoastRecord
from app.services.ai.critique.contracts import CritiqueResult
from app.services.ai.critique.service import CritiqueGenerator
from app.services.capture.service import ScreenshotAcquirer
from app.services.roast_store import RoastStore
from app.services.url_gate import Resolver, resolve_host, validate_target_url

logger = logging.getLogger(__name__)


class RoastCommitter:
    """Persistence coordinator for one roast."""

    def __init__(self, *, assets: BaseAssetStore, critic: CritiqueGenerator, store: RoastStore) -> None:
        self.assets = assets
        self.critic = critic
        self.store = store

    async def commit(
        self,
        url: str,
        image: bytes,
        visitor_id: Optional[uuid.UUID] = None,
        *,
        content_type: str = OUTPUT_CONTENT_TYPE,
    ) -> RoastRecord:
        roast_id = uuid.uuid4()
        path = build_object_path(roast_id)

        upload_outcome, critique_outcome = await asyncio.gather(
            self._upload(path, image, content_type),
            self.critic.analyze(image, media_type=content_type),
            return_exceptions=True,
        )

        upload_failed = isinstance(upload_outcome, BaseException)
        critique_failed = isinstance(critique_outcome, BaseException)

        if upload_failed or critique_failed:
            if critique_failed and not upload_failed:
                logger.warning("Orphaned screenshot %s left for roast %s (critique failed)", path, roast_id)
            if upload_failed and critique_failed:
                logger.error("Upload for roast %s also failed: %r", roast_id, upload_outcome)
            raise _commit_error(critique_outcome if critique_failed else upload_outcome)

        record = RoastRecord(
            id=roast_id,
            url=url,
            critique=cast(CritiqueResult, critique_outcome),
            imageUrl=cast(str, upload_outcome),
            visitorId=visitor_id,
            createdAt=datetime.now(timezone.utc),
        )
        await self.store.insert(record)
        logger.info("Committed roast %s for %s", roast_id, url)
        return record

    async def _upload(self, path: str, image: bytes, content_type: str) -> str:
        try:
            return await self.assets.upload(path, image, content_type)
        except StorageFailure:
            raise
        except Exception as exc:
            raise StorageFailure(f"upload of {path} failed: {exc!r}") from exc


def _commit_error(exc: BaseException) -> BaseException:
    """Keep typed failures; wrap anything else so it is logged and classified as generic."""
    if isinstance(exc, RoastError) or not isinstance(exc, Exception):
        return exc
    logger.error("Unexpected commit failure: %r", exc)
    return GenerationFailure(f"unexpected failure: {exc!r}")


@dataclass
class RoastPipeline:
    """Everything one ``POST /roast`` needs, passed in explicitly."""

    acquirer: ScreenshotAcquirer
    committer: RoastCommitter
    resolver: Resolver = field(default=resolve_host)

    async def run(self, url: object, visitor_id: Optional[uuid.UUID] = None) -> RoastRecord:
        target = await validate_target_url(url, resolver=self.resolver)
        screenshot: ProcessedImage = await self.acquirer.capture(target)
        return await self.committer.commit(
            target,
            screenshot.data,
            visitor_id,
            content_type=screenshot.content_type,
        )
