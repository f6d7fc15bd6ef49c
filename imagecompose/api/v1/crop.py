"""
Crop Endpoint

POST /api/v1/crop - Trim uniform borders off images and optionally resize.

Items without the configured binary property pass through unchanged.
"""

from fastapi import APIRouter, Depends

from imagecompose.api.v1.limits import check_batch_size
from imagecompose.api.dependencies import get_crop_runner
from imagecompose.core.logging import get_logger
from imagecompose.engines.compositor.schemas import BatchResponse, CropBatchRequest
from imagecompose.pipeline.batch import BatchRunner

logger = get_logger(__name__)
router = APIRouter()


@router.post("", response_model=BatchResponse)
async def crop(
    request: CropBatchRequest,
    runner: BatchRunner = Depends(get_crop_runner)
):
    """Trim and resize a batch of items."""
    check_batch_size(len(request.items))

    logger.info(
        "crop_request_received",
        items=len(request.items),
        resize_option=request.config.resize_option.value
    )

    return await runner.run_async(request.items, request.config, request.max_concurrent)
