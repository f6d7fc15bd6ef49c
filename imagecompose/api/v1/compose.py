"""
Compose Endpoint

POST /api/v1/compose - Composite product images onto background images.

Each item carries two base64 binaries (background and product, by property
name). Items are processed concurrently; every item gets a result, failed
ones carry an error instead of the composed image.
"""

from fastapi import APIRouter, Depends

from imagecompose.api.v1.limits import check_batch_size
from imagecompose.api.dependencies import get_compose_runner
from imagecompose.core.logging import get_logger
from imagecompose.engines.compositor.schemas import BatchResponse, ComposeBatchRequest
from imagecompose.pipeline.batch import BatchRunner

logger = get_logger(__name__)
router = APIRouter()


@router.post("", response_model=BatchResponse)
async def compose(
    request: ComposeBatchRequest,
    runner: BatchRunner = Depends(get_compose_runner)
):
    """
    Composite a batch of items.

    The request `config` applies to every item unless the item brings its
    own. Supported modes:
    - **detect_white_region**: place the product in the white band above or
      below the background content (`vertical_alignment` picks the band)
    - **fill_entire_background**: rotate the product to cover as much of the
      background as possible and centre it
    """
    check_batch_size(len(request.items))

    logger.info(
        "compose_request_received",
        items=len(request.items),
        mode=request.config.mode.value,
        max_concurrent=request.max_concurrent
    )

    return await runner.run_async(request.items, request.config, request.max_concurrent)
