"""Multithreaded processor implementation - uses a bounded thread pool."""

import threading
import time
from typing import List, Optional
from concurrent.futures import ThreadPoolExecutor, wait

from ..core import ItemResult, TransformJob, get_logger
from ..core.config import Settings
from ..core.exceptions import ItemTimeoutError, StorageError
from ..core.protocols import StagingStoreProtocol, TransformerProtocol
from ..core.services import ImageTransformer
from .common import (
    count_batch_results,
    failed_result,
    log_batch_statistics,
    process_single_item,
)


def process_batch(
    batch: List[TransformJob],
    settings: Settings,
    store: StagingStoreProtocol,
    transformer: Optional[TransformerProtocol] = None,
) -> List[ItemResult]:
    """
    Process a batch of images using a thread pool.

    At most ``settings.max_workers`` transforms run at once. Items not done
    when ``settings.batch_timeout_seconds`` elapses are reported as timed out.

    Args:
        batch: List of jobs to process
        settings: Worker limit and time budgets
        store: Staging store (thread-safe key issuance)
        transformer: Transform engine; defaults to `ImageTransformer`

    Returns:
        List of item results in input order

    Raises:
        StorageError: If any item fails to stage
    """
    if not batch:
        return []

    logger = get_logger("image-batch.processor")
    transformer = transformer or ImageTransformer()
    cancelled = threading.Event()
    max_workers = min(settings.max_workers, len(batch))
    start_time = time.monotonic()

    executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="transform")
    try:
        futures = [
            executor.submit(
                process_single_item,
                job,
                store,
                transformer,
                settings.item_timeout_seconds,
                cancelled,
            )
            for job in batch
        ]

        done, not_done = wait(futures, timeout=settings.batch_timeout_seconds)
        if not_done:
            cancelled.set()
            for future in not_done:
                future.cancel()
            logger.warning(
                f"Batch deadline of {settings.batch_timeout_seconds}s exceeded; "
                f"{len(not_done)} item(s) still pending"
            )

        results: List[ItemResult] = []
        for job, future in zip(batch, futures):
            if future not in done:
                results.append(failed_result(job, ItemTimeoutError("Batch deadline exceeded")))
                continue
            try:
                results.append(future.result())
            except StorageError:
                raise
            except Exception as e:
                logger.error(f"[{job.item.index}] Unexpected worker failure: {e}", exc_info=True)
                results.append(failed_result(job, e))

        log_batch_statistics(
            time.monotonic() - start_time, len(results), *count_batch_results(results)
        )
        return results
    finally:
        # Do not block on workers that overran the deadline
        executor.shutdown(wait=False, cancel_futures=True)
