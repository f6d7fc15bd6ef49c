"""
Batch Runner

Applies a per-item handler to a list of items. Every failure is caught at
item granularity and reported as a structured result, so one bad item
never aborts the rest. Output order always matches input order.
"""

import asyncio
import time
import traceback
import uuid
from typing import Callable, Generic, List, Optional, Sequence, TypeVar

from pydantic import BaseModel

from imagecompose.core.exceptions import CompositorBaseException
from imagecompose.core.logging import LogContext, get_logger
from imagecompose.core.metrics import record_batch_size, record_item_outcome
from imagecompose.engines.compositor.adapter import PillowRasterAdapter
from imagecompose.engines.compositor.schemas import BatchResponse, ItemResult, WorkItem
from imagecompose.engines.compositor.services import CompositorService, CropService

logger = get_logger(__name__)

ConfigT = TypeVar("ConfigT", bound=BaseModel)
Handler = Callable[[WorkItem, BaseModel], ItemResult]


def failure_result(item: WorkItem, exc: Exception) -> ItemResult:
    """Mirror the input item and mark it failed."""
    if isinstance(exc, CompositorBaseException):
        message = exc.message
        details = dict(exc.details)
        if exc.stage:
            details["stage"] = exc.stage
    else:
        message = str(exc) or type(exc).__name__
        details = {}

    return ItemResult(
        data=dict(item.data),
        binary=dict(item.binary),
        success=False,
        error=message,
        error_type=type(exc).__name__,
        details=details,
    )


def summarize(results: List[ItemResult], start_time: float) -> BatchResponse:
    success_count = sum(1 for r in results if r.success)
    return BatchResponse(
        results=results,
        success_count=success_count,
        failure_count=len(results) - success_count,
        total_processing_time_ms=int((time.time() - start_time) * 1000),
    )


class BatchRunner(Generic[ConfigT]):
    """
    Runs `handler(item, config)` over a batch.

    Each item uses its own `config` override when present, otherwise the
    batch config.
    """

    def __init__(self, operation: str, handler: Handler):
        self.operation = operation
        self.handler = handler

    def run_item(
        self,
        index: int,
        item: WorkItem,
        config: ConfigT,
        batch_id: Optional[str] = None
    ) -> ItemResult:
        item_config = getattr(item, "config", None) or config

        with LogContext(batch_id=batch_id, item_index=index, stage=self.operation):
            start_time = time.time()
            try:
                result = self.handler(item, item_config)
            except CompositorBaseException as e:
                logger.warning(
                    "item_failed",
                    operation=self.operation,
                    error=e.message,
                    error_type=type(e).__name__,
                    details=e.details
                )
                record_item_outcome(self.operation, False, type(e).__name__)
                return failure_result(item, e)
            except Exception as e:
                logger.error(
                    "item_unexpected_error",
                    operation=self.operation,
                    error=str(e),
                    error_type=type(e).__name__,
                    traceback=traceback.format_exc()
                )
                record_item_outcome(self.operation, False, type(e).__name__)
                return failure_result(item, e)

            logger.info(
                "item_completed",
                operation=self.operation,
                duration_ms=int((time.time() - start_time) * 1000)
            )
            record_item_outcome(self.operation, True)
            return result

    def run(self, items: Sequence[WorkItem], config: ConfigT) -> BatchResponse:
        """Process items one at a time, in input order."""
        batch_id = str(uuid.uuid4())
        start_time = time.time()
        record_batch_size(self.operation, len(items))

        with LogContext(batch_id=batch_id):
            logger.info("batch_started", operation=self.operation, items=len(items))
            results = [
                self.run_item(index, item, config, batch_id)
                for index, item in enumerate(items)
            ]
            response = summarize(results, start_time)
            logger.info(
                "batch_completed",
                operation=self.operation,
                succeeded=response.success_count,
                failed=response.failure_count,
                processing_time_ms=response.total_processing_time_ms
            )
        return response

    async def run_async(
        self,
        items: Sequence[WorkItem],
        config: ConfigT,
        max_concurrent: int = 4
    ) -> BatchResponse:
        """
        Process items on worker threads, at most `max_concurrent` at once.

        Results are gathered in input order.
        """
        batch_id = str(uuid.uuid4())
        start_time = time.time()
        record_batch_size(self.operation, len(items))
        semaphore = asyncio.Semaphore(max_concurrent)

        async def process_one(index: int, item: WorkItem) -> ItemResult:
            async with semaphore:
                return await asyncio.to_thread(self.run_item, index, item, config, batch_id)

        with LogContext(batch_id=batch_id):
            logger.info(
                "batch_started",
                operation=self.operation,
                items=len(items),
                max_concurrent=max_concurrent
            )
            results = await asyncio.gather(
                *[process_one(index, item) for index, item in enumerate(items)]
            )
            response = summarize(list(results), start_time)
            logger.info(
                "batch_completed",
                operation=self.operation,
                succeeded=response.success_count,
                failed=response.failure_count,
                processing_time_ms=response.total_processing_time_ms
            )
        return response


# =============================================================================
# Runner Factories
# =============================================================================

def build_compose_runner(adapter: Optional[PillowRasterAdapter] = None) -> BatchRunner:
    service = CompositorService(adapter or PillowRasterAdapter())
    return BatchRunner("compose", service.compose_item)


def build_crop_runner(adapter: Optional[PillowRasterAdapter] = None) -> BatchRunner:
    service = CropService(adapter or PillowRasterAdapter())
    return BatchRunner("crop", service.crop_item)
