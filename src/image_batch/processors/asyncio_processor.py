"""AsyncIO processor implementation - runs transforms off the event loop."""

import asyncio
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional

from ..core import ItemResult, TransformJob, get_logger
from ..core.config import Settings
from ..core.exceptions import ItemTimeoutError, StorageError, TransformError
from ..core.protocols import StagingStoreProtocol, TransformerProtocol
from ..core.services import ImageTransformer
from .common import count_batch_results, failed_result, log_batch_statistics


async def process_single_item_async(
    job: TransformJob,
    store: StagingStoreProtocol,
    transformer: TransformerProtocol,
    semaphore: asyncio.Semaphore,
    item_timeout: float,
    executor: Optional[ThreadPoolExecutor] = None,
) -> ItemResult:
    """
    Process a single image asynchronously.

    The semaphore slot is held until the transform thread finishes, even
    when the item already timed out, so at most ``max_workers`` transforms
    ever run at once.
    """
    logger = get_logger("image-batch.asyncio-processor")
    loop = asyncio.get_running_loop()
    item = job.item
    result = ItemResult(index=item.index, original_name=item.original_name)

    await semaphore.acquire()
    start_time = time.monotonic()
    # Step 1: Transform in a worker thread (CPU-bound)
    transform = loop.run_in_executor(
        executor, transformer.transform, item.raw_bytes, job.options
    )

    def _on_transform_done(future: "asyncio.Future[bytes]") -> None:
        semaphore.release()
        if not future.cancelled():
            # Mark the outcome as retrieved when the item already timed out
            future.exception()

    transform.add_done_callback(_on_transform_done)

    try:
        data = await asyncio.wait_for(asyncio.shield(transform), timeout=item_timeout)

        # Step 2: Stage the output
        result.artifact = await asyncio.to_thread(
            store.put, data, item.original_name, job.options.format
        )
        result.success = True
        logger.debug(f"[{item.index}:{item.original_name}] Staged as {result.artifact.key}")

    except asyncio.TimeoutError:
        error = ItemTimeoutError(f"Transform exceeded {item_timeout:.2f}s")
        result.error = str(error)
        result.error_type = type(error).__name__
        logger.error(f"[{item.index}:{item.original_name}] {error}")
    except TransformError as e:
        result.error = str(e)
        result.error_type = type(e).__name__
        logger.error(f"[{item.index}:{item.original_name}] Processing failed: {e}")

    result.processing_time = time.monotonic() - start_time
    return result


async def process_batch_async(
    batch: List[TransformJob],
    settings: Settings,
    store: StagingStoreProtocol,
    transformer: TransformerProtocol,
) -> List[ItemResult]:
    """Process a batch concurrently, bounded by a semaphore and a deadline."""
    logger = get_logger("image-batch.asyncio-processor")
    semaphore = asyncio.Semaphore(settings.max_workers)
    executor = ThreadPoolExecutor(
        max_workers=settings.max_workers, thread_name_prefix="transform"
    )

    try:
        tasks = [
            asyncio.create_task(
                process_single_item_async(
                    job,
                    store,
                    transformer,
                    semaphore,
                    settings.item_timeout_seconds,
                    executor,
                )
            )
            for job in batch
        ]

        done, pending = await asyncio.wait(tasks, timeout=settings.batch_timeout_seconds)
        if pending:
            logger.warning(
                f"Batch deadline of {settings.batch_timeout_seconds}s exceeded; "
                f"cancelling {len(pending)} item(s)"
            )
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
    finally:
        # Do not block on transforms that overran their budget
        executor.shutdown(wait=False, cancel_futures=True)

    results: List[ItemResult] = []
    for job, task in zip(batch, tasks):
        if task not in done:
            results.append(failed_result(job, ItemTimeoutError("Batch deadline exceeded")))
            continue
        error = task.exception()
        if error is None:
            results.append(task.result())
        elif isinstance(error, StorageError):
            raise error
        else:
            logger.error(f"[{job.item.index}] Unexpected worker failure: {error}")
            results.append(failed_result(job, error))
    return results


def process_batch(
    batch: List[TransformJob],
    settings: Settings,
    store: StagingStoreProtocol,
    transformer: Optional[TransformerProtocol] = None,
) -> List[ItemResult]:
    """
    Process a batch of images using asyncio.

    This is the synchronous wrapper that runs the async function; it must be
    called from a thread without a running event loop.

    Args:
        batch: List of jobs to process
        settings: Worker limit and time budgets
        store: Staging store receiving the outputs
        transformer: Transform engine; defaults to `ImageTransformer`

    Returns:
        List of item results in input order
    """
    if not batch:
        return []

    start_time = time.monotonic()
    results = asyncio.run(
        process_batch_async(batch, settings, store, transformer or ImageTransformer())
    )
    log_batch_statistics(
        time.monotonic() - start_time, len(results), *count_batch_results(results)
    )
    return results
