"""Factory classes for creating configured service instances."""

from typing import Dict, Optional

from ..processors import (
    asyncio_process_batch,
    multithread_process_batch,
    serial_process_batch,
)
from .config import Settings, get_settings
from .exceptions import ConfigurationError
from .protocols import (
    LoggerProtocol,
    ProcessBatchFunction,
    StagingStoreProtocol,
    TransformerProtocol,
)
from .services import ArtifactReader, BatchOrchestrator, ImageTransformer
from .storage import StagingStore

PROCESSORS: Dict[str, ProcessBatchFunction] = {
    "serial": serial_process_batch,
    "multithread": multithread_process_batch,
    "asyncio": asyncio_process_batch,
}


class StagingStoreFactory:
    """Factory for creating staging store instances."""

    @staticmethod
    def create_store(settings: Optional[Settings] = None) -> StagingStore:
        """Create a store rooted at the configured staging directory."""
        settings = settings or get_settings()
        return StagingStore(settings.staging_dir, ttl_seconds=settings.artifact_ttl_seconds)


class PipelineFactory:
    """Factory for creating the complete processing pipeline."""

    @staticmethod
    def select_processor(name: str) -> ProcessBatchFunction:
        try:
            return PROCESSORS[name]
        except KeyError:
            raise ConfigurationError(
                f"Unknown processor '{name}'; choose one of {', '.join(PROCESSORS)}"
            ) from None

    @staticmethod
    def create_orchestrator(
        settings: Optional[Settings] = None,
        store: Optional[StagingStoreProtocol] = None,
        transformer: Optional[TransformerProtocol] = None,
        logger: Optional[LoggerProtocol] = None,
    ) -> BatchOrchestrator:
        """Create a fully configured batch orchestrator."""
        settings = settings or get_settings()

        if store is None:
            store = StagingStoreFactory.create_store(settings)
        if transformer is None:
            transformer = ImageTransformer(max_output_pixels=settings.max_output_pixels)

        return BatchOrchestrator(
            store=store,
            process_batch_fn=PipelineFactory.select_processor(settings.processor),
            settings=settings,
            transformer=transformer,
            logger=logger,
        )

    @staticmethod
    def create_reader(store: StagingStoreProtocol) -> ArtifactReader:
        """Create an artifact reader over ``store``."""
        return ArtifactReader(store)
