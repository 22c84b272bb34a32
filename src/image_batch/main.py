"""Main module for the image batch CLI."""

import sys
import json
import argparse
from pathlib import Path
from typing import List

from .core import BatchRequest, ImageBatchError, ImageItem, get_logger
from .core.config import PROCESSOR_CHOICES, Settings, get_settings
from .core.factories import PipelineFactory, StagingStoreFactory
from .core.logging_config import configure_from_settings

VERSION = "0.1.0"


def build_parser() -> argparse.ArgumentParser:
    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="image-batch",
        description="Image Batch - resize and re-encode image batches into a staging area",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve the HTTP API
  image-batch serve --port 8000

  # Transform local files
  image-batch process --input a.png b.jpg \\
                      --options '[{"width": "200", "format": "webp"}]'

  # Remove expired artifacts
  image-batch cleanup
        """,
    )

    subparsers: argparse._SubParsersAction = parser.add_subparsers(
        dest="command", help="Available commands"
    )

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default=None, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port")

    process_parser = subparsers.add_parser(
        "process", help="Transform local image files into the staging area"
    )
    process_parser.add_argument(
        "--input", nargs="+", required=True, help="Image files to transform"
    )
    process_parser.add_argument(
        "--options",
        default="[]",
        help="JSON array of {width, height, quality, format} records (default: [])",
    )
    process_parser.add_argument(
        "--staging-dir", default=None, help="Override the staging directory"
    )
    process_parser.add_argument(
        "--processor",
        type=str,
        default=None,
        choices=list(PROCESSOR_CHOICES),
        help="Processing strategy to use (default: from settings)",
    )
    process_parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging"
    )

    cleanup_parser = subparsers.add_parser(
        "cleanup", help="Remove artifacts older than the configured TTL"
    )
    cleanup_parser.add_argument(
        "--staging-dir", default=None, help="Override the staging directory"
    )

    subparsers.add_parser("version", help="Show version information")
    return parser


def _settings_with_overrides(args: argparse.Namespace) -> Settings:
    settings = get_settings()
    overrides = {}
    if getattr(args, "staging_dir", None):
        overrides["staging_dir"] = Path(args.staging_dir)
    if getattr(args, "processor", None):
        overrides["processor"] = args.processor
    if getattr(args, "debug", False):
        overrides["log_level"] = "DEBUG"
    return settings.model_copy(update=overrides) if overrides else settings


def run_process(args: argparse.Namespace) -> int:
    """Transform local files and print the manifest as JSON."""
    settings = _settings_with_overrides(args)
    configure_from_settings(settings.log_level, settings.log_format)
    logger = get_logger("image-batch.cli")

    images: List[ImageItem] = []
    for index, name in enumerate(args.input):
        path = Path(name)
        if not path.is_file():
            logger.error(f"Input file not found: {path}")
            return 1
        images.append(ImageItem(raw_bytes=path.read_bytes(), original_name=path.name, index=index))

    orchestrator = PipelineFactory.create_orchestrator(settings=settings)
    try:
        batch = orchestrator.process(BatchRequest(images=images, options_text=args.options))
    except ImageBatchError as e:
        logger.error(f"Processing failed: {e}")
        return 1

    manifest = {
        "images": [
            {
                "originalName": r.original_name,
                "filename": r.artifact.key,
                "tempPath": str(r.artifact.storage_location),
            }
            for r in batch.results
            if r.success
        ],
        "errors": [
            {"index": r.index, "originalName": r.original_name, "error": r.error}
            for r in batch.results
            if not r.success
        ],
    }
    print(json.dumps(manifest, indent=2))
    return 0


def run_cleanup(args: argparse.Namespace) -> int:
    settings = _settings_with_overrides(args)
    store = StagingStoreFactory.create_store(settings)
    removed = store.purge_expired()
    print(f"Removed {removed} expired artifact(s) from {store.root}")
    return 0


def run_serve(args: argparse.Namespace) -> None:
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "image_batch.api:create_app",
        factory=True,
        host=args.host or settings.host,
        port=args.port or settings.port,
    )


def main() -> None:
    """
    Entry point for the command-line interface (CLI) of the Image Batch service.

    Dispatches to the "serve", "process", "cleanup" and "version" commands.
    """
    parser = build_parser()
    args: argparse.Namespace = parser.parse_args()

    if args.command == "serve":
        run_serve(args)

    elif args.command == "process":
        sys.exit(run_process(args))

    elif args.command == "cleanup":
        sys.exit(run_cleanup(args))

    elif args.command == "version":
        print("Image Batch CLI")
        print(f"Version {VERSION}")
        print("Batch image transformation with a short-lived staging area")
        sys.exit(0)

    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
