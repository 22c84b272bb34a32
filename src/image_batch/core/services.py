"""Service implementations for the batch transformation pipeline."""

import time
from typing import List, Optional, Tuple

from .config import Settings
from .error_handling import BatchOperationContextManager
from .exceptions import BatchFailedError, ValidationError
from .image_utils import transform_image
from .logging_config import get_logger
from .models import (
    BatchRequest,
    BatchResult,
    ImageItem,
    TransformJob,
    TransformOptions,
)
from .options import bind_options, parse_options_payload
from .protocols import (
    LoggerProtocol,
    ProcessBatchFunction,
    StagingStoreProtocol,
    TransformerProtocol,
)


class ImageTransformer:
    """Pure image transformation service with no I/O dependencies."""

    def __init__(self, max_output_pixels: Optional[int] = None):
        self.max_output_pixels = max_output_pixels

    def transform(self, image_bytes: bytes, options: TransformOptions) -> bytes:
        """Decode, optionally resize, and encode image bytes."""
        return transform_image(image_bytes, options, max_pixels=self.max_output_pixels)


class WorkItemFactory:
    """Factory for creating work items."""

    @staticmethod
    def create_jobs(
        images: List[ImageItem], options: List[TransformOptions]
    ) -> List[TransformJob]:
        """Pair each image with its bound options, fixing positional indices."""
        return [
            TransformJob(item=image.model_copy(update={"index": i}), options=opts)
            for i, (image, opts) in enumerate(zip(images, options))
        ]


class BatchOrchestrator:
    """Decodes a batch request, fans it out to a processor and collects results.

    Isolation policy is partial-success: every item's outcome is recorded and
    the call fails only when no item succeeded.
    """

    def __init__(
        self,
        store: StagingStoreProtocol,
        process_batch_fn: ProcessBatchFunction,
        settings: Settings,
        transformer: Optional[TransformerProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
    ):
        self._store = store
        self._process_batch_fn = process_batch_fn
        self._settings = settings
        self._transformer = transformer or ImageTransformer()
        self._logger = logger or get_logger("image-batch.orchestrator")

    def prepare(self, request: BatchRequest) -> List[TransformJob]:
        """
        Validate the request and bind options to images.

        Raises:
            ValidationError: If images or options are missing or invalid
            ParseError: If the options payload is not a JSON array
        """
        if not request.images or not request.options_text:
            raise ValidationError("Missing files or options")

        raw_options = parse_options_payload(request.options_text)
        options = bind_options(raw_options, len(request.images))
        return WorkItemFactory.create_jobs(request.images, options)

    def process(self, request: BatchRequest) -> BatchResult:
        """
        Transform and stage every image of a batch.

        Returns:
            Per-item results in input order

        Raises:
            ValidationError, ParseError: Before any transform work starts
            StorageError: If the staging area is unavailable
            BatchFailedError: If no item succeeded
        """
        jobs = self.prepare(request)

        self._store.ensure_ready()
        self._store.purge_expired()

        start_time = time.time()
        self._logger.info(f"Processing batch of {len(jobs)} image(s)")

        with BatchOperationContextManager(
            operation_name=f"Image batch of {len(jobs)}"
        ) as batch_manager:
            results = self._process_batch_fn(
                jobs, self._settings, self._store, self._transformer
            )
            for result in results:
                if not result.success:
                    batch_manager.add_error(
                        item_identifier=f"{result.index}:{result.original_name}",
                        error_message=result.error or "Unknown error",
                    )

        batch = BatchResult(results=results)
        self._logger.info(
            f"Batch done in {time.time() - start_time:.2f}s: "
            f"{batch.succeeded} succeeded, {batch.failed} failed"
        )

        if results and batch.succeeded == 0:
            first = results[0]
            raise BatchFailedError(
                f"All {len(results)} item(s) failed; item {first.index} "
                f"({first.original_name}): {first.error}",
                results=results,
            )
        return batch


class ArtifactReader:
    """Serves staged artifacts by key."""

    def __init__(self, store: StagingStoreProtocol):
        self._store = store

    def read(self, key: str) -> Tuple[bytes, str]:
        """
        Return the artifact bytes and the content type of its stored format.

        Raises:
            NotFoundError: If the key does not resolve
        """
        artifact = self._store.resolve(key)
        return self._store.get(key), artifact.content_type
