"""Serial processor implementation - processes images one by one."""

import time
from typing import List, Optional

from ..core import ItemResult, TransformJob
from ..core.config import Settings
from ..core.protocols import StagingStoreProtocol, TransformerProtocol
from ..core.services import ImageTransformer
from .common import count_batch_results, log_batch_statistics, process_single_item


def process_batch(
    batch: List[TransformJob],
    settings: Settings,
    store: StagingStoreProtocol,
    transformer: Optional[TransformerProtocol] = None,
) -> List[ItemResult]:
    """
    Processes a batch of images serially, one by one, in the current thread.

    Args:
        batch: A list of `TransformJob` objects to process.
        settings: `Settings` carrying the per-item timeout.
        store: Staging store receiving the outputs.
        transformer: Transform engine; defaults to `ImageTransformer`.

    Returns:
        A list of `ItemResult` objects in input order.
    """
    transformer = transformer or ImageTransformer()
    results = []
    start_time = time.monotonic()

    for job in batch:
        result = process_single_item(
            job, store, transformer, item_timeout=settings.item_timeout_seconds
        )
        results.append(result)

    if results:
        log_batch_statistics(
            time.monotonic() - start_time, len(results), *count_batch_results(results)
        )
    return results
