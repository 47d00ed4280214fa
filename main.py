#!/usr/bin/env python3
import os
import json
import asyncio
import argparse
import logging
import sys
from typing import Optional

from tqdm import tqdm

from ownership_chunker import config
from ownership_chunker.data_models import ProgressEvent
from ownership_chunker.document_service import DocumentService
from ownership_chunker.errors import ConfigurationError
from ownership_chunker.orchestrator import (
    extract_and_consolidate,
    process_document,
    split_and_upload,
    split_to_disk,
)

logger = logging.getLogger(__name__)


class TqdmProgress:
    """
    Progress observer that drives a tqdm bar from upload events.
    """

    def __init__(self, desc: str = "Uploading chunks"):
        self.desc = desc
        self.bar: Optional[tqdm] = None

    def __call__(self, event: ProgressEvent) -> None:
        if self.bar is None:
            self.bar = tqdm(total=event.total, desc=self.desc, unit="file")
        self.bar.update(1)
        self.bar.set_postfix_str(f"{event.current_file} -> {event.file_id}")

    def close(self) -> None:
        if self.bar is not None:
            self.bar.close()
            self.bar = None


def configure_logging() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler("ownership_chunker.log")
        ]
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Split large PDFs, upload the chunks and extract an ownership tree"
    )

    parser.add_argument(
        "--mode",
        choices=["split", "upload", "extract"],
        default="extract",
        help="split: write chunks to disk; upload: upload chunks and print file IDs; "
             "extract: full run producing output_<millis>.json (default: extract)"
    )

    parser.add_argument(
        "-i", "--input",
        help="Path to the input PDF file"
    )

    parser.add_argument(
        "-p", "--pages-per-file",
        type=int,
        default=config.PAGES_PER_FILE,
        help=f"Number of pages per chunk (default: {config.PAGES_PER_FILE})"
    )

    parser.add_argument(
        "-o", "--output-dir",
        default=config.OUTPUT_DIR,
        help=f"Directory for chunk files or the consolidated JSON (default: {config.OUTPUT_DIR})"
    )

    parser.add_argument(
        "--model",
        default=config.LMM_MODEL,
        help=f"Model used for analysis and merging (default: {config.LMM_MODEL})"
    )

    parser.add_argument(
        "--file-id",
        action="append",
        default=[],
        help="ID of an already uploaded file to analyze (repeatable, extract mode only)"
    )

    parser.add_argument(
        "--concurrent-uploads",
        action="store_true",
        help="Upload all chunks at once instead of one after another"
    )

    return parser


def validate_args(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    if args.pages_per_file < 1:
        parser.error("--pages-per-file must be at least 1")

    if args.file_id:
        if args.mode != "extract":
            parser.error("--file-id can only be used with --mode extract")
        return

    if not args.input:
        parser.error("-i/--input is required")
    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        sys.exit(1)
    if not args.input.lower().endswith(".pdf"):
        logger.error(f"Input file must be a PDF: {args.input}")
        sys.exit(1)


def create_service(model_name: str) -> DocumentService:
    """Check credentials and build the document service, exiting on failure."""
    try:
        api_key = config.get_api_key(model_name)
    except ConfigurationError as e:
        logger.error(f"Error: {str(e)}")
        sys.exit(1)

    logger.info(f"Using API key: {config.mask_api_key(api_key)}")
    return DocumentService.create(model_name, api_key=api_key)


async def run(args: argparse.Namespace) -> int:
    if args.mode == "split":
        result = split_to_disk(args.input, args.output_dir, args.pages_per_file)
        if not result.success:
            logger.error(f"Split failed: {result.error}")
            return 1
        logger.info(result.message)
        for path in result.files:
            logger.info(f"- {path}")
        return 0

    service = create_service(args.model)
    progress = TqdmProgress()

    try:
        if args.mode == "upload":
            result = await split_and_upload(
                args.input,
                service,
                pages_per_file=args.pages_per_file,
                on_progress=progress,
                concurrent=args.concurrent_uploads,
            )
            progress.close()
            if not result.success:
                logger.error(f"Upload failed: {result.error}")
                return 1
            logger.info(f"Created {result.total_files} files from {result.total_pages} pages")
            for record in result.uploaded_files:
                logger.info(
                    f"- {record.filename}: ID={record.file_id}, "
                    f"Pages {record.page_range.first_page}-{record.page_range.last_page}"
                )
            print(json.dumps(result.file_ids))
            return 0

        if args.file_id:
            result = await extract_and_consolidate(args.file_id, service, args.output_dir)
        else:
            result = await process_document(
                args.input,
                service,
                pages_per_file=args.pages_per_file,
                output_dir=args.output_dir,
                on_progress=progress,
                concurrent_uploads=args.concurrent_uploads,
            )
    finally:
        progress.close()

    if not result.success:
        logger.error(f"Extraction failed: {result.error}")
        if result.raw_text is not None:
            logger.error(f"Raw merge response:\n{result.raw_text}")
        return 1

    if result.output_path is None:
        logger.info("Processing complete. Document had no pages, nothing to analyze")
    else:
        logger.info(f"Processing complete. Results saved to {result.output_path}")
    return 0


def main():
    """
    Main entry point for the ownership chunker.
    """
    configure_logging()
    parser = build_parser()
    args = parser.parse_args()
    validate_args(parser, args)

    try:
        exit_code = asyncio.run(run(args))
    except Exception as e:
        logger.error(f"Error during processing: {str(e)}", exc_info=True)
        sys.exit(1)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
