"""
Celery Tasks for Batch Compositing

Each task takes a JSON batch request (the same body the HTTP API accepts)
and returns the JSON batch response. Item failures never fail the task;
only a malformed request does.
"""

from typing import Any, Dict

from pydantic import ValidationError

from imagecompose.core.celery_app import celery_app
from imagecompose.core.exceptions import InvalidItemError
from imagecompose.core.logging import get_logger
from imagecompose.engines.compositor.schemas import ComposeBatchRequest, CropBatchRequest
from imagecompose.pipeline.batch import build_compose_runner, build_crop_runner

logger = get_logger(__name__)

_compose_runner = build_compose_runner()
_crop_runner = build_crop_runner()


def _parse(model, payload: Dict[str, Any]):
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise InvalidItemError(
            f"Invalid batch request: {e.error_count()} validation error(s)",
            details={"errors": e.errors(include_url=False, include_context=False)}
        )


@celery_app.task(name="imagecompose.pipeline.tasks.compose_batch", acks_late=True)
def compose_batch(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Composite a product onto a background for every item in the batch."""
    request = _parse(ComposeBatchRequest, payload)
    logger.info("task_compose_batch_started", items=len(request.items))

    response = _compose_runner.run(request.items, request.config)
    return response.model_dump(mode="json")


@celery_app.task(name="imagecompose.pipeline.tasks.crop_batch", acks_late=True)
def crop_batch(payload: Dict[str, Any]) -> Dict[str, Any]:
    """Trim and resize every item in the batch."""
    request = _parse(CropBatchRequest, payload)
    logger.info("task_crop_batch_started", items=len(request.items))

    response = _crop_runner.run(request.items, request.config)
    return response.model_dump(mode="json")
