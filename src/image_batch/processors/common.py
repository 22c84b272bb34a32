"""Common functions shared across all processor implementations."""

import threading
import time
from typing import List, Optional, Tuple

from ..core import (
    ItemResult,
    TransformJob,
    get_logger,
)
from ..core.error_handling import with_error_handling
from ..core.exceptions import ItemTimeoutError, StorageError, TransformError
from ..core.models import Artifact
from ..core.protocols import StagingStoreProtocol, TransformerProtocol


def _transform(transformer: TransformerProtocol, job: TransformJob) -> bytes:
    logger = get_logger("image-batch.processor")
    logger.debug(
        f"[{job.item.index}:{job.item.original_name}] Transforming to "
        f"{job.options.format.value} (width={job.options.width}, "
        f"height={job.options.height}, quality={job.options.quality})"
    )
    return transformer.transform(job.item.raw_bytes, job.options)


@with_error_handling
def _stage(store: StagingStoreProtocol, data: bytes, job: TransformJob) -> Artifact:
    return store.put(data, job.item.original_name, job.options.format)


def process_single_item(
    job: TransformJob,
    store: StagingStoreProtocol,
    transformer: TransformerProtocol,
    item_timeout: Optional[float] = None,
    cancelled: Optional[threading.Event] = None,
) -> ItemResult:
    """
    Process a single image: Transform → Stage.

    Any failure of the transform is captured in the returned result. Storage
    failures propagate since they are fatal for the whole batch.

    Args:
        job: Image and its bound options
        store: Staging store receiving the output
        transformer: Transform engine
        item_timeout: Seconds the transform may take before the item fails
        cancelled: Set when the batch deadline passed; the item then fails
            without publishing an artifact

    Returns:
        Tagged result for the item
    """
    logger = get_logger("image-batch.processor")
    item = job.item
    result = ItemResult(index=item.index, original_name=item.original_name)
    start_time = time.monotonic()

    try:
        data = _transform(transformer, job)

        elapsed = time.monotonic() - start_time
        if item_timeout is not None and elapsed > item_timeout:
            raise ItemTimeoutError(
                f"Transform took {elapsed:.2f}s, exceeding {item_timeout:.2f}s"
            )
        if cancelled is not None and cancelled.is_set():
            raise ItemTimeoutError("Batch deadline exceeded")

        result.artifact = _stage(store, data, job)
        result.success = True
        logger.debug(f"[{item.index}:{item.original_name}] Staged as {result.artifact.key}")

    except StorageError:
        raise
    except TransformError as e:
        result.success = False
        result.error = str(e)
        result.error_type = type(e).__name__
        logger.error(f"[{item.index}:{item.original_name}] Failed due to {type(e).__name__}: {e}")
    except Exception as e:
        # Anything else raised by the transform fails only this item
        logger.error(
            f"[{item.index}:{item.original_name}] Unexpected transform failure: {e!r}",
            exc_info=True,
        )
        result = failed_result(job, e)

    result.processing_time = time.monotonic() - start_time
    return result


def failed_result(job: TransformJob, error: Exception) -> ItemResult:
    """Build a failed result for an item whose worker raised or never ran."""
    return ItemResult(
        index=job.item.index,
        original_name=job.item.original_name,
        success=False,
        error=str(error) or type(error).__name__,
        error_type=type(error).__name__,
    )


def count_batch_results(results: List[ItemResult]) -> Tuple[int, int]:
    """
    Count successful and failed results in a batch.

    Args:
        results: List of item results

    Returns:
        Tuple of (processed_count, error_count)
    """
    processed_count = 0
    error_count = 0

    for result in results:
        if result.success:
            processed_count += 1
        else:
            error_count += 1

    return processed_count, error_count


def log_batch_statistics(
    total_time: float, total_items: int, processed_count: int, error_count: int
):
    """Log final statistics for one batch."""
    logger = get_logger("image-batch.processor")
    rate = total_items / total_time if total_time > 0 else 0

    logger.info(
        f"Batch finished in {total_time:.2f}s ({rate:.1f} items/sec) - "
        f"Success: {processed_count}, Errors: {error_count}"
    )
