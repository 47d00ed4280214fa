import asyncio
import logging
import traceback
from pathlib import Path
from typing import Optional, Sequence, Union

from . import config
from .consolidator import Consolidator
from .data_models import PipelineResult, SplitUploadResult, SplitWriteResult
from .document_service import DocumentService
from .errors import ConsolidationError
from .extraction import ExtractionFanout
from .pdf_processor import ChunkMaterializer, SourceDocument, write_split_files
from .splitter import PageSplitter
from .uploader import ProgressObserver, UploadOrchestrator

logger = logging.getLogger(__name__)

Source = Union[str, Path, bytes]


async def load_source(source: Source, filename: Optional[str] = None) -> SourceDocument:
    """Load a document from a path or from in-memory bytes."""
    if isinstance(source, (bytes, bytearray)):
        return SourceDocument.from_bytes(bytes(source), filename or "document.pdf")
    return await asyncio.to_thread(SourceDocument.load, source)


async def split_and_upload(
    source: Source,
    service: DocumentService,
    pages_per_file: int = config.PAGES_PER_FILE,
    on_progress: Optional[ProgressObserver] = None,
    filename: Optional[str] = None,
    concurrent: bool = False,
) -> SplitUploadResult:
    """
    Split a PDF into chunks of ``pages_per_file`` pages and upload each chunk.

    Args:
        source: Path to the PDF or its bytes
        service: Document service that stores the chunks
        pages_per_file: Maximum number of pages per chunk
        on_progress: Called after each completed upload
        filename: Name used for chunk files when ``source`` is bytes
        concurrent: Launch all uploads at once instead of one after another

    Returns:
        SplitUploadResult; on failure ``success`` is False and no file ids are
        returned
    """
    try:
        document = await load_source(source, filename)
        total_pages = document.page_count
        splitter = PageSplitter(pages_per_file)
        ranges = splitter.split(total_pages)
        uploader = UploadOrchestrator(service)

        if total_pages == 0:
            logger.warning(f"{document.filename} has no pages, nothing to upload")
            return SplitUploadResult(
                success=True,
                message="PDF has no pages, nothing uploaded",
                pages_per_file=pages_per_file,
            )

        if not ranges:
            record = await uploader.upload_whole(document, on_progress)
            return SplitUploadResult(
                success=True,
                message="PDF uploaded without splitting (fewer pages than split size)",
                total_pages=total_pages,
                total_files=1,
                pages_per_file=pages_per_file,
                split=False,
                uploaded_files=[record],
            )

        logger.info(f"Splitting {document.filename} ({total_pages} pages) into {len(ranges)} files")
        units = list(ChunkMaterializer().materialize_all(document, ranges))
        if concurrent:
            records = await uploader.upload_concurrent(units, on_progress)
        else:
            records = await uploader.upload_sequential(units, on_progress)

        return SplitUploadResult(
            success=True,
            message=f"Successfully split and uploaded PDF into {len(records)} files",
            total_pages=total_pages,
            total_files=len(records),
            pages_per_file=pages_per_file,
            split=True,
            uploaded_files=records,
        )

    except Exception as e:
        logger.error(f"Error splitting and uploading PDF: {str(e)}", exc_info=True)
        return SplitUploadResult(success=False, error=str(e), details=traceback.format_exc())


async def extract_and_consolidate(
    file_ids: Sequence[str],
    service: DocumentService,
    output_dir: Union[str, Path] = config.OUTPUT_DIR,
    extraction_instructions: Optional[str] = None,
    consolidation_instructions: Optional[str] = None,
) -> PipelineResult:
    """
    Analyze already uploaded files and merge the results into one tree.

    Args:
        file_ids: Identifiers returned by the document service
        service: Document service providing analysis and merging
        output_dir: Directory for the ``output_<millis>.json`` file

    Returns:
        PipelineResult with the saved tree, or the error (and the raw merge
        response when the merge output could not be parsed)
    """
    try:
        fanout = ExtractionFanout(service, extraction_instructions)
        results = await fanout.run_for_ids(file_ids)

        consolidator = Consolidator(service, output_dir, consolidation_instructions)
        tree = await consolidator.consolidate([result.text for result in results])
        output_path = await asyncio.to_thread(consolidator.save, tree)

        return PipelineResult(success=True, output_path=str(output_path), tree=tree)

    except ConsolidationError as e:
        return PipelineResult(
            success=False,
            error=str(e),
            details=traceback.format_exc(),
            raw_text=e.raw_text,
        )
    except Exception as e:
        logger.error(f"Error extracting ownership structure: {str(e)}", exc_info=True)
        return PipelineResult(success=False, error=str(e), details=traceback.format_exc())


async def process_document(
    source: Source,
    service: DocumentService,
    pages_per_file: int = config.PAGES_PER_FILE,
    output_dir: Union[str, Path] = config.OUTPUT_DIR,
    on_progress: Optional[ProgressObserver] = None,
    filename: Optional[str] = None,
    concurrent_uploads: bool = False,
) -> PipelineResult:
    """
    Main orchestration function: split, upload, extract and consolidate.

    Returns:
        PipelineResult; ``upload`` always holds the split/upload outcome
    """
    source_name = filename if isinstance(source, (bytes, bytearray)) else source
    logger.info(f"Starting processing of PDF: {source_name}")

    upload = await split_and_upload(
        source,
        service,
        pages_per_file=pages_per_file,
        on_progress=on_progress,
        filename=filename,
        concurrent=concurrent_uploads,
    )
    if not upload.success:
        return PipelineResult(success=False, upload=upload, error=upload.error, details=upload.details)

    if not upload.uploaded_files:
        logger.info("Document has no pages, nothing to analyze")
        return PipelineResult(success=True, upload=upload)

    result = await extract_and_consolidate(upload.file_ids, service, output_dir)
    result.upload = upload
    return result


def split_to_disk(
    source: Union[str, Path],
    output_dir: Union[str, Path],
    pages_per_file: int = config.PAGES_PER_FILE,
) -> SplitWriteResult:
    """
    Split a PDF and write the chunks to ``output_dir`` instead of uploading them.
    """
    try:
        document = SourceDocument.load(source)
        paths = write_split_files(document, pages_per_file, output_dir)
        if not paths:
            message = "No splitting needed (fewer pages than split size)"
        else:
            message = f"Successfully split PDF into {len(paths)} files"
        return SplitWriteResult(
            success=True,
            message=message,
            total_pages=document.page_count,
            files=[str(path) for path in paths],
        )
    except Exception as e:
        logger.error(f"Error splitting PDF: {str(e)}", exc_info=True)
        return SplitWriteResult(success=False, error=str(e), details=traceback.format_exc())
