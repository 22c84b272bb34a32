"""Unit tests for service implementations."""

import pytest
from unittest.mock import Mock

from image_batch.core.config import Settings
from image_batch.core.exceptions import (
    BatchFailedError,
    ConfigurationError,
    EncodeError,
    NotFoundError,
    ParseError,
    StorageError,
    ValidationError,
)
from image_batch.core.factories import PROCESSORS, PipelineFactory, StagingStoreFactory
from image_batch.core.models import (
    BatchRequest,
    ImageItem,
    OutputFormat,
    TransformOptions,
)
from image_batch.core.services import (
    ArtifactReader,
    BatchOrchestrator,
    ImageTransformer,
    WorkItemFactory,
)
from image_batch.core.storage import StagingStore
from image_batch.processors import serial_process_batch
from image_batch.testing.fakes import FakeLogger, FakeTransformer, create_test_image


@pytest.fixture
def settings(tmp_path):
    return Settings(_env_file=None, staging_dir=tmp_path / "staging", processor="serial")


@pytest.fixture
def store(settings):
    return StagingStore(settings.staging_dir, ttl_seconds=3600)


def _request(count, options_text="[]"):
    images = [
        ImageItem(raw_bytes=f"img-{i}".encode(), original_name=f"{i}.png")
        for i in range(count)
    ]
    return BatchRequest(images=images, options_text=options_text)


class TestImageTransformer:
    """Tests for ImageTransformer."""

    def test_transform_produces_requested_format(self):
        """Test that the transformer delegates to the Pillow engine."""
        output = ImageTransformer().transform(
            create_test_image(20, 20), TransformOptions(format=OutputFormat.PNG)
        )
        assert output.startswith(b"\x89PNG")

    def test_output_pixel_limit(self):
        """Test that the transformer enforces its configured pixel limit."""
        transformer = ImageTransformer(max_output_pixels=100)
        with pytest.raises(EncodeError):
            transformer.transform(create_test_image(20, 20), TransformOptions(width=20))


class TestWorkItemFactory:
    """Tests for WorkItemFactory."""

    def test_create_jobs_assigns_positional_indices(self):
        """Test that jobs carry their position regardless of the incoming index."""
        images = [ImageItem(raw_bytes=b"a", index=7), ImageItem(raw_bytes=b"b", index=7)]
        options = [TransformOptions(width=1), TransformOptions(width=2)]

        jobs = WorkItemFactory.create_jobs(images, options)

        assert [job.item.index for job in jobs] == [0, 1]
        assert [job.options.width for job in jobs] == [1, 2]
        assert images[0].index == 7


class TestBatchOrchestrator:
    """Tests for BatchOrchestrator."""

    def _orchestrator(self, settings, store, transformer=None, process_batch_fn=None):
        return BatchOrchestrator(
            store=store,
            process_batch_fn=process_batch_fn or serial_process_batch,
            settings=settings,
            transformer=transformer or FakeTransformer(),
            logger=FakeLogger(),
        )

    @pytest.mark.parametrize(
        "request_",
        [
            BatchRequest(images=[], options_text="[]"),
            BatchRequest(images=[ImageItem(raw_bytes=b"x")], options_text=None),
            BatchRequest(images=[ImageItem(raw_bytes=b"x")], options_text=""),
        ],
    )
    def test_missing_images_or_options(self, settings, store, request_):
        """Test that requests without images or options are rejected."""
        orchestrator = self._orchestrator(settings, store)
        with pytest.raises(ValidationError, match="Missing files or options"):
            orchestrator.process(request_)

    def test_invalid_options_json(self, settings, store):
        """Test that malformed options fail before any work starts."""
        transformer = FakeTransformer()
        orchestrator = self._orchestrator(settings, store, transformer)

        with pytest.raises(ParseError):
            orchestrator.process(_request(1, "{broken"))

        assert transformer.calls == []
        assert not store.root.exists()

    def test_invalid_option_value_rejects_whole_batch(self, settings, store):
        """Test that one bad record rejects the batch with no artifacts."""
        transformer = FakeTransformer()
        orchestrator = self._orchestrator(settings, store, transformer)

        with pytest.raises(ValidationError) as exc_info:
            orchestrator.process(_request(2, '[{}, {"format": "bmp"}]'))

        assert exc_info.value.index == 1
        assert transformer.calls == []

    def test_process_success(self, settings, store):
        """Test a fully successful batch."""
        orchestrator = self._orchestrator(settings, store)

        batch = orchestrator.process(_request(3, '[{"format": "webp"}]'))

        assert batch.succeeded == 3
        assert [a.original_name for a in batch.manifest] == ["0.png", "1.png", "2.png"]
        assert batch.manifest[0].format is OutputFormat.WEBP
        assert batch.manifest[1].format is OutputFormat.JPEG
        for artifact in batch.manifest:
            assert store.get(artifact.key).startswith(b"transformed:")

    def test_partial_success(self, settings, store):
        """Test that failing items are reported while others are staged."""
        transformer = FakeTransformer()
        transformer.set_failure(b"img-1")
        orchestrator = self._orchestrator(settings, store, transformer)

        batch = orchestrator.process(_request(3))

        assert batch.succeeded == 2
        assert batch.failed == 1
        assert batch.results[1].error_type == "DecodeError"
        assert len(batch.manifest) == 2

    def test_all_failed_raises(self, settings, store):
        """Test that a batch with no successes raises BatchFailedError."""
        transformer = FakeTransformer()
        transformer.set_failure(b"img-0")
        transformer.set_failure(b"img-1")
        orchestrator = self._orchestrator(settings, store, transformer)

        with pytest.raises(BatchFailedError) as exc_info:
            orchestrator.process(_request(2))

        assert len(exc_info.value.results) == 2
        assert "item 0" in str(exc_info.value)

    def test_processor_receives_injected_dependencies(self, settings, store):
        """Test that the orchestrator passes jobs, settings, store and transformer."""
        transformer = FakeTransformer()
        process_batch_fn = Mock(return_value=[])
        orchestrator = self._orchestrator(settings, store, transformer, process_batch_fn)

        orchestrator.process(_request(1))

        jobs, passed_settings, passed_store, passed_transformer = process_batch_fn.call_args[0]
        assert len(jobs) == 1
        assert passed_settings is settings
        assert passed_store is store
        assert passed_transformer is transformer

    def test_storage_error_propagates(self, settings):
        """Test that an unavailable staging area fails the request."""
        store = Mock()
        store.ensure_ready.side_effect = StorageError("cannot create")
        orchestrator = self._orchestrator(settings, store)

        with pytest.raises(StorageError):
            orchestrator.process(_request(1))

    def test_purges_expired_artifacts(self, settings):
        """Test that each batch sweeps expired artifacts first."""
        store = Mock()
        store.purge_expired.return_value = 0
        orchestrator = self._orchestrator(
            settings, store, process_batch_fn=Mock(return_value=[])
        )

        orchestrator.process(_request(1))

        store.ensure_ready.assert_called_once()
        store.purge_expired.assert_called_once()

    def test_logs_batch_summary(self, settings, store):
        """Test that the orchestrator logs through the injected logger."""
        logger = FakeLogger()
        orchestrator = BatchOrchestrator(
            store, serial_process_batch, settings, FakeTransformer(), logger
        )

        orchestrator.process(_request(2))

        messages = [log["message"] for log in logger.get_logs("INFO")]
        assert any("Processing batch of 2" in m for m in messages)
        assert any("2 succeeded, 0 failed" in m for m in messages)


class TestArtifactReader:
    """Tests for ArtifactReader."""

    def test_read_returns_bytes_and_content_type(self, store):
        """Test reading a staged artifact."""
        artifact = store.put(b"gif-bytes", "a.gif", OutputFormat.GIF)
        assert ArtifactReader(store).read(artifact.key) == (b"gif-bytes", "image/gif")

    def test_read_unknown_key(self, store):
        """Test that an unknown key raises NotFoundError."""
        store.ensure_ready()
        with pytest.raises(NotFoundError):
            ArtifactReader(store).read("../../etc/passwd")


class TestFactories:
    """Tests for the factories."""

    def test_processor_registry(self):
        """Test that every configured strategy is registered."""
        assert set(PROCESSORS) == {"serial", "multithread", "asyncio"}

    def test_select_unknown_processor(self):
        """Test that an unknown strategy raises ConfigurationError."""
        with pytest.raises(ConfigurationError, match="Unknown processor"):
            PipelineFactory.select_processor("gpu")

    def test_create_store_uses_settings(self, settings):
        """Test that the store is rooted at the configured directory."""
        store = StagingStoreFactory.create_store(settings)
        assert store.root == settings.staging_dir.resolve()

    def test_create_orchestrator_applies_pixel_limit(self, settings, store):
        """Test that the default transformer honours max_output_pixels."""
        limited = settings.model_copy(update={"max_output_pixels": 100})
        orchestrator = PipelineFactory.create_orchestrator(settings=limited, store=store)
        assert orchestrator._transformer.max_output_pixels == 100

    def test_create_orchestrator_wires_store(self, settings, store):
        """Test building an orchestrator around an existing store."""
        orchestrator = PipelineFactory.create_orchestrator(
            settings=settings, store=store, transformer=FakeTransformer()
        )
        batch = orchestrator.process(_request(1))
        assert store.get(batch.manifest[0].key).startswith(b"transformed:")
