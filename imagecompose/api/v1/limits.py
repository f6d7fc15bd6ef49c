"""Request limits shared by the batch endpoints."""

from fastapi import HTTPException

from imagecompose.core.config import settings


def check_batch_size(count: int):
    if count > settings.MAX_BATCH_ITEMS:
        raise HTTPException(
            status_code=413,
            detail=f"Batch of {count} items exceeds the maximum of {settings.MAX_BATCH_ITEMS}"
        )
