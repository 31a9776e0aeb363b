"""
Face Extractor CLI.

Responsibility:
    Parse command-line arguments, configure the application, wire together
    the detector, I/O handlers and batch aggregator, and report the run
    summary.

Usage:
    face-extractor --input images/ --output faces/
    face-extractor --input images/ --target-faces 100 --threshold 3.0
    face-extractor --config my_config.yaml --manifest json,csv
    python main.py --input images/                 # from a source checkout

Exit codes:
    0:   the run completed (target reached or list exhausted), even if
        every image failed.
    1:   configuration or initialization failure; nothing was processed.
    130: interrupted from the keyboard.
"""

import argparse
import logging
import sys
import time
from typing import Any, Dict, List, Optional

import yaml

from face_extractor.aggregator import BatchAggregator
from face_extractor.config import AppConfig, load_config
from face_extractor.detector import Detector
from face_extractor.errors import ConfigError
from face_extractor.input_handler import InputHandler
from face_extractor.output_handler import OutputHandler

logger = logging.getLogger("face_extractor.cli")

_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_LOG_DATEFMT = "%H:%M:%S"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        prog="face-extractor",
        description="Extract face crops from a directory of images.",
    )

    parser.add_argument(
        "--config",
        type=str,
        help="Path to YAML configuration file.",
    )
    parser.add_argument(
        "-i", "--input",
        type=str,
        help="Input directory containing images (or a single image). Overrides config.",
    )
    parser.add_argument(
        "-o", "--output",
        type=str,
        help="Output directory for extracted faces. Overrides config.",
    )
    parser.add_argument(
        "--detector",
        type=str,
        choices=["haar", "dnn"],
        help="Face detector family. Overrides config.",
    )
    parser.add_argument(
        "--backend",
        type=str,
        choices=["cpu", "cuda"],
        help="Compute backend for the DNN detector. Overrides config.",
    )
    parser.add_argument(
        "--min-face-size",
        type=int,
        help="Minimum face width and height in pixels. Overrides config.",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        help="Detector confidence threshold. Overrides config.",
    )
    parser.add_argument(
        "--target-faces",
        type=int,
        help="Stop once this many faces have been saved. Overrides config.",
    )
    parser.add_argument(
        "--padding",
        type=float,
        help="Crop padding per side, as a fraction of the face box. Overrides config.",
    )
    parser.add_argument(
        "--min-area",
        type=float,
        help="Minimum face area as a fraction of image area. Overrides config.",
    )
    parser.add_argument(
        "--max-area",
        type=float,
        help="Maximum face area as a fraction of image area. Overrides config.",
    )
    parser.add_argument(
        "--min-aspect",
        type=float,
        help="Minimum face width/height ratio. Overrides config.",
    )
    parser.add_argument(
        "--max-aspect",
        type=float,
        help="Maximum face width/height ratio. Overrides config.",
    )
    parser.add_argument(
        "--no-recursive",
        dest="recursive",
        action="store_false",
        default=None,
        help="Only scan the top level of the input directory.",
    )
    parser.add_argument(
        "--manifest",
        type=str,
        help="Manifest format(s), comma-separated: none, json, csv. Overrides config.",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level. Overrides config.",
    )

    return parser.parse_args(argv)


def build_overrides(args: argparse.Namespace) -> Dict[str, Dict[str, Any]]:
    """Map parsed CLI arguments onto config sections. None means 'not given'."""
    return {
        "model": {
            "detector": args.detector,
            "backend": args.backend,
        },
        "filter": {
            "min_face_size": args.min_face_size,
            "confidence_threshold": args.threshold,
            "min_area_fraction": args.min_area,
            "max_area_fraction": args.max_area,
            "min_aspect_ratio": args.min_aspect,
            "max_aspect_ratio": args.max_aspect,
        },
        "crop": {
            "padding_fraction": args.padding,
        },
        "input": {
            "source": args.input,
            "recursive": args.recursive,
        },
        "output": {
            "save_path": args.output,
            "target_faces": args.target_faces,
            "manifest": args.manifest,
        },
        "logging": {
            "level": args.log_level,
        },
    }


def configure_logging(level: str) -> None:
    """Configure root logging once; later calls only adjust the level."""
    logging.basicConfig(level=level, format=_LOG_FORMAT, datefmt=_LOG_DATEFMT)
    logging.getLogger().setLevel(level)


def _finalize(output_handler: OutputHandler, summary: Optional[dict] = None) -> None:
    """Write manifests; a failure here is logged and does not fail the run."""
    try:
        output_handler.finalize(summary)
    except OSError as e:
        logger.error("Failed to write manifest: %s", e)


def run(config: AppConfig) -> int:
    """Initialize components from config and process the batch."""
    # 1. Initialize Components
    try:
        detector = Detector(config)
        input_handler = InputHandler(
            source=config.input.source,
            recursive=config.input.recursive,
        )
        output_handler = OutputHandler(config.output)

    except (FileNotFoundError, ValueError, RuntimeError, OSError) as e:
        logger.error("Initialization failed: %s", e)
        return 1

    aggregator = BatchAggregator(
        detector=detector,
        writer=output_handler,
        filter_config=config.filter,
        target_faces=config.output.target_faces,
        padding_fraction=config.crop.padding_fraction,
        progress_interval=config.logging.progress_interval,
    )

    # 2. Processing Loop
    start_time = time.perf_counter()
    try:
        stats = aggregator.run(input_handler)
    except KeyboardInterrupt:
        logger.info("Interrupted by user.")
        _finalize(output_handler)
        return 130
    elapsed = time.perf_counter() - start_time

    # 3. Manifest and summary
    _finalize(output_handler, stats.to_dict())

    rate = stats.images_attempted / elapsed if elapsed > 0 else 0.0
    logger.info(
        "Finished in %.1fs (%.2f images/s). Output directory: %s",
        elapsed, rate, output_handler.save_path,
    )
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point."""
    args = parse_args(argv)
    configure_logging(args.log_level or "INFO")

    # Configuration (CLI args > ENV > YAML > Defaults)
    try:
        config = load_config(args.config, overrides=build_overrides(args))
    except (FileNotFoundError, ConfigError, yaml.YAMLError) as e:
        logger.error("Configuration error: %s", e)
        return 1

    configure_logging(config.logging.level)
    logger.info(
        "Face Extractor: target %d faces from %s → %s",
        config.output.target_faces, config.input.source, config.output.save_path,
    )

    return run(config)


if __name__ == "__main__":
    sys.exit(main())
