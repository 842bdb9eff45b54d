"""es2qdrant CLI: export an Elasticsearch index into a Qdrant collection."""

from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from dataclasses import replace
from pathlib import Path

from es2qdrant.config import DEFAULT_CONFIG_PATH, ExportConfig
from es2qdrant.export import run_export

logger = logging.getLogger(__name__)


def init_config(config_path: str = DEFAULT_CONFIG_PATH) -> str:
    """Write a default config file unless one already exists."""
    if Path(config_path).exists():
        return f"config.yaml already exists at {config_path}"
    ExportConfig(config_path=config_path).save()
    return f"Created config.yaml at {config_path}"


def apply_overrides(config: ExportConfig, args: argparse.Namespace) -> ExportConfig:
    """Layer command-line flags over the loaded config."""
    source, destination, pipeline = config.source, config.destination, config.pipeline
    if getattr(args, "page_size", None) is not None:
        source = replace(source, page_size=args.page_size)
    if getattr(args, "index", None) is not None:
        source = replace(source, index=args.index)
    if getattr(args, "collection", None) is not None:
        destination = replace(destination, collection_name=args.collection)
    if getattr(args, "workers", None) is not None:
        pipeline = replace(pipeline, workers=args.workers)
    if getattr(args, "embedder", None) is not None:
        pipeline = replace(pipeline, embedder=args.embedder)
    return replace(config, source=source, destination=destination, pipeline=pipeline)


def _install_signal_handlers(cancel: threading.Event) -> None:
    def _handler(signum, frame) -> None:
        logger.warning("Received signal %d, stopping after the current batch", signum)
        cancel.set()

    signal.signal(signal.SIGINT, _handler)
    signal.signal(signal.SIGTERM, _handler)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Export an Elasticsearch index into Qdrant")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to config.yaml")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command")

    export_parser = subparsers.add_parser("export", help="Run the export")
    export_parser.add_argument("--index", help="Source index name")
    export_parser.add_argument("--page-size", type=int, help="Documents per search request")
    export_parser.add_argument("--collection", help="Destination collection name")
    export_parser.add_argument("--workers", type=int, help="Parallel upserts per page")
    export_parser.add_argument("--embedder", choices=["zero", "onnx"], help="Embedder to use")

    subparsers.add_parser("init-config", help="Write a default config file")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "init-config":
        print(init_config(args.config))
        return 0

    if args.command != "export":
        parser.print_help()
        return 2

    config = apply_overrides(ExportConfig.load(args.config), args)
    logger.info(
        "Exporting %s -> Qdrant collection '%s'",
        config.source.search_url,
        config.destination.collection_name,
    )
    cancel = threading.Event()
    _install_signal_handlers(cancel)
    result = run_export(config, cancel_event=cancel)
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
