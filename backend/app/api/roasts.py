"""Roast endpoints: create one roast, read recent ones, read by id or visitor."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends

from app.core.dependencies import get_pipeline, get_roast_store
from app.core.errors import InputValidationError, NotFoundError
from app.schemas.roast import RoastRecord, RoastRequest
from app.services.roast_service import RoastPipeline
from app.services.roast_store import RECENT_ROASTS_LIMIT, RoastStore

router = APIRouter()


def _parse_uuid(value: str, message: str) -> uuid.UUID:
    try:
        return uuid.UUID(value)
    except (TypeError, ValueError) as exc:
        raise InputValidationError(f"malformed uuid {value!r}", public_message=message) from exc


@router.post("/roast", response_model=RoastRecord, summary="Capture and roast a website")
async def create_roast(
    payload: RoastRequest,
    pipeline: RoastPipeline = Depends(get_pipeline),
):
    visitor_id = None
    if payload.visitorId:
        visitor_id = _parse_uuid(payload.visitorId, "Invalid visitor ID.")
    return await pipeline.run(payload.url, visitor_id)


@router.get("/roasts", response_model=list[RoastRecord])
async def recent_roasts(store: RoastStore = Depends(get_roast_store)):
    return await store.recent(RECENT_ROASTS_LIMIT)


@router.get("/roasts/mine/{visitor_id}", response_model=list[RoastRecord])
async def visitor_roasts(visitor_id: str, store: RoastStore = Depends(get_roast_store)):
    parsed = _parse_uuid(visitor_id, "Invalid visitor ID.")
    rows = await store.for_visitor(parsed)
    if not rows:
        raise NotFoundError(f"no roasts for visitor {parsed}")
    return rows


@router.get("/roasts/{roast_id}", response_model=RoastRecord)
async def get_roast(roast_id: str, store: RoastStore = Depends(get_roast_store)):
    parsed = _parse_uuid(roast_id, "Invalid roast ID.")
    record = await store.get(parsed)
    if record is None:
        raise NotFoundError(f"roast {parsed} not found")
    return record
