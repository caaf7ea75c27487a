"""HTTP route definitions for the service."""

from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from app.schemas import HaikuCreate, HaikuRecord
from datastore.haiku_store import HaikuStore, build_default_store
from services.errors import StoreError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter()


def get_store() -> HaikuStore:
    return build_default_store()


# Store calls block on a lock, so these handlers are plain functions and run
# in FastAPI's threadpool.
@router.post(
    "/haikus",
    status_code=status.HTTP_201_CREATED,
    response_model=HaikuRecord,
    summary="Store a haiku submitted by a client.",
)
def create_haiku(
    payload: HaikuCreate,
    store: HaikuStore = Depends(get_store),
) -> HaikuRecord:
    try:
        record = HaikuRecord.from_submission(payload)
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc

    try:
        store.append(record)
    except StoreError as exc:
        logger.error("Failed to store submitted haiku: %s", exc, extra={"stage": "persist"})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to store haiku: {exc}",
        ) from exc
    return record


@router.get(
    "/api/haikus",
    response_model=List[HaikuRecord],
    summary="List every stored haiku, newest first.",
)
def list_haikus(store: HaikuStore = Depends(get_store)) -> List[HaikuRecord]:
    try:
        return store.list_all()
    except StoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch haikus: {exc}",
        ) from exc


@router.get(
    "/ping",
    summary="Liveness check.",
    status_code=status.HTTP_200_OK,
)
async def ping() -> dict[str, str]:
    return {"message": "pong"}


@router.get(
    "/db-ping",
    summary="Readiness check against the record store.",
    status_code=status.HTTP_200_OK,
)
def db_ping(store: HaikuStore = Depends(get_store)) -> dict[str, str]:
    try:
        store.ping()
    except StoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    return {"status": "ok"}
