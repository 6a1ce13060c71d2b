"""Command-line interface for single and batch table recovery.

``extract`` processes one photo and prints its grid as JSON; ``batch``
processes a folder and writes one CSV line per photo, reporting failed
photos without stopping the run.
"""

import argparse
import csv
import json
import sys
import time
from pathlib import Path

from docgrid.errors import DocGridError
from docgrid.processor import TableDocumentProcessor, save_image
from docgrid.utils.config import AppConfig, load_config
from docgrid.utils.logger import get_logger, setup_logging

logger = get_logger(__name__)

_SUPPORTED_EXTENSIONS = ("*.png", "*.jpg", "*.jpeg", "*.tiff", "*.tif", "*.bmp")
_CSV_COLUMNS = [
    "filename",
    "status",
    "rows",
    "columns",
    "cells",
    "processing_time_s",
    "error_kind",
    "error",
]


def _find_images(input_dir: Path) -> list[Path]:
    """Find all supported image files in a directory.

    Args:
        input_dir: Directory to scan for images.

    Returns:
        Sorted list of image file paths.
    """
    files: list[Path] = []
    for ext in _SUPPORTED_EXTENSIONS:
        files.extend(input_dir.glob(ext))
        files.extend(input_dir.glob(ext.upper()))
    return sorted(set(files))


def _load_app_config(config_path: Path | None, no_ocr: bool = False) -> AppConfig:
    config = load_config(config_path)
    if no_ocr:
        config.cells.enabled = False
    return config


def process_folder(
    input_dir: Path,
    output_csv: Path,
    config: AppConfig,
    verbose: bool = False,
) -> dict[str, int]:
    """Process every image in a folder and write a CSV summary.

    A photo that fails, whether with a pipeline error or because it cannot
    be decoded, is recorded as failed; the remaining photos are still
    processed.

    Args:
        input_dir: Directory containing document photos.
        output_csv: Path for the output CSV file.
        config: Application configuration.
        verbose: Whether to print per-file progress.

    Returns:
        Summary dict with total, successful, and failed counts.
    """
    processor = TableDocumentProcessor(config)

    files = _find_images(input_dir)
    if not files:
        logger.warning("No images found in %s", input_dir)
        return {"total": 0, "successful": 0, "failed": 0}

    logger.info("Found %d images to process", len(files))

    results: list[dict[str, object]] = []
    successful = 0
    failed = 0

    for i, file_path in enumerate(files, 1):
        if verbose:
            print(f"Processing [{i}/{len(files)}]: {file_path.name}")

        start_time = time.time()
        try:
            result = processor.process_file(file_path)
        except Exception as exc:
            logger.error("Failed to process %s: %s", file_path.name, exc)
            kind = exc.kind if isinstance(exc, DocGridError) else "error"
            results.append(
                {
                    "filename": file_path.name,
                    "status": "failed",
                    "error_kind": kind,
                    "error": str(exc),
                }
            )
            failed += 1
            continue

        results.append(
            {
                "filename": file_path.name,
                "status": "success",
                "rows": len(result.table.rows),
                "columns": result.table.column_count,
                "cells": sum(len(row) for row in result.table.rows),
                "processing_time_s": round(time.time() - start_time, 2),
            }
        )
        successful += 1

    _write_csv(results, output_csv)
    logger.info("Results written to %s", output_csv)

    summary = {"total": len(files), "successful": successful, "failed": failed}
    _print_summary(summary, output_csv)
    return summary


def _write_csv(results: list[dict[str, object]], output_path: Path) -> None:
    """Write per-image results to a CSV file.

    Args:
        results: List of result dictionaries.
        output_path: Path for the output CSV file.
    """
    if not results:
        return

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=_CSV_COLUMNS, extrasaction="ignore")
        writer.writeheader()
        writer.writerows(results)


def _print_summary(summary: dict[str, int], output_csv: Path) -> None:
    """Print batch processing summary to stdout.

    Args:
        summary: Counts of total, successful, and failed images.
        output_csv: Path to the output CSV.
    """
    print(f"\n{'=' * 50}")
    print("Batch Processing Complete")
    print(f"{'=' * 50}")
    print(f"Total:      {summary['total']}")
    print(f"Successful: {summary['successful']}")
    print(f"Failed:     {summary['failed']}")
    print(f"Output:     {output_csv}")


def extract_single(
    file_path: Path,
    config: AppConfig,
    rectified_path: Path | None = None,
) -> dict[str, object]:
    """Process a single photo and return its structured result.

    Args:
        file_path: Path to the document photo.
        config: Application configuration.
        rectified_path: Where to save the rectified page, if anywhere.

    Returns:
        Dictionary with the boundary, row boxes and (with OCR) the text grid.
    """
    processor = TableDocumentProcessor(config)
    result = processor.process_file(file_path)

    if rectified_path is not None:
        save_image(result.rectified, rectified_path)
        logger.info("Rectified page written to %s", rectified_path)

    return result.to_dict()


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and dispatch to the appropriate command.

    Args:
        argv: Command-line arguments (defaults to sys.argv).
    """
    parser = argparse.ArgumentParser(
        description="Recover the table grid of photographed documents",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "-c", "--config", type=Path, default=None, help="YAML configuration file"
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    batch_parser = subparsers.add_parser("batch", help="Process a folder of photos")
    batch_parser.add_argument("input_dir", type=Path, help="Input directory")
    batch_parser.add_argument(
        "-o",
        "--output",
        type=Path,
        default=Path("results.csv"),
        help="Output CSV file (default: results.csv)",
    )
    batch_parser.add_argument(
        "--no-ocr", action="store_true", help="Only recover cell boxes"
    )
    batch_parser.add_argument(
        "-v", "--verbose", action="store_true", help="Verbose output"
    )

    single_parser = subparsers.add_parser("extract", help="Process a single photo")
    single_parser.add_argument("file", type=Path, help="Document photo to process")
    single_parser.add_argument(
        "--no-ocr", action="store_true", help="Only recover cell boxes"
    )
    single_parser.add_argument("-o", "--output", type=Path, help="Output JSON file")
    single_parser.add_argument(
        "--rectified", type=Path, help="Save the rectified page to this image file"
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    config = _load_app_config(args.config, args.no_ocr)
    setup_logging(config.log_level)

    if args.command == "batch":
        if not args.input_dir.is_dir():
            print(f"Error: {args.input_dir} is not a directory", file=sys.stderr)
            sys.exit(1)
        process_folder(args.input_dir, args.output, config, args.verbose)
    elif args.command == "extract":
        if not args.file.exists():
            print(f"Error: {args.file} does not exist", file=sys.stderr)
            sys.exit(1)
        try:
            result = extract_single(args.file, config, args.rectified)
        except DocGridError as exc:
            print(f"Error: {exc.kind}: {exc}", file=sys.stderr)
            sys.exit(2)
        output_str = json.dumps(result, indent=2)
        if args.output:
            args.output.parent.mkdir(parents=True, exist_ok=True)
            args.output.write_text(output_str)
            print(f"Output written to {args.output}")
        else:
            print(output_str)


if __name__ == "__main__":
    main()
