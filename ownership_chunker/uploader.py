"""
Upload orchestration for split documents.
"""

import asyncio
import logging
from typing import Callable, List, Optional, Sequence

from . import config
from .data_models import ProgressEvent, SplitUnit, StoredFile, UploadRecord
from .document_service import DocumentService
from .errors import UploadError
from .pdf_processor import SourceDocument
from .tasks import wait_all_or_first_failure

logger = logging.getLogger(__name__)

ProgressObserver = Callable[[ProgressEvent], None]


def make_progress_event(current: int, total: int, filename: str, file_id: str) -> ProgressEvent:
    return ProgressEvent(
        current=current,
        total=total,
        percentage=round(current / total * 100),
        current_file=filename,
        file_id=file_id,
    )


class UploadOrchestrator:
    """
    Sends split units to the document service and collects their identifiers.

    Uploads are all-or-nothing: the first failure aborts the run with an
    UploadError and no records are returned.
    """

    def __init__(self, service: DocumentService, mime_type: str = config.PDF_MIME_TYPE):
        self.service = service
        self.mime_type = mime_type

    async def _store(self, unit: SplitUnit) -> UploadRecord:
        try:
            stored: StoredFile = await self.service.store(unit.content, unit.filename, self.mime_type)
        except Exception as e:
            logger.error(f"Error uploading {unit.filename}: {str(e)}")
            raise UploadError(f"Failed to upload {unit.filename}: {str(e)}", filename=unit.filename) from e

        logger.info(
            f"Uploaded: {unit.filename} (Pages {unit.page_range.first_page}-{unit.page_range.last_page})"
            f" - ID: {stored.file_id}"
        )
        return UploadRecord(
            index=unit.index,
            filename=unit.filename,
            page_range=unit.page_range,
            file_id=stored.file_id,
            service_filename=stored.filename,
            uploaded_at=stored.created_at,
        )

    async def upload_sequential(
        self,
        units: Sequence[SplitUnit],
        on_progress: Optional[ProgressObserver] = None,
    ) -> List[UploadRecord]:
        """
        Upload units one after another, in order.

        Args:
            units: Units to upload
            on_progress: Called after each unit's upload has completed

        Returns:
            Upload records in the same order as ``units``
        """
        records = []
        total = len(units)
        for position, unit in enumerate(units, start=1):
            record = await self._store(unit)
            records.append(record)
            if on_progress:
                on_progress(make_progress_event(position, total, unit.filename, record.file_id))
        return records

    async def upload_concurrent(
        self,
        units: Sequence[SplitUnit],
        on_progress: Optional[ProgressObserver] = None,
    ) -> List[UploadRecord]:
        """
        Launch every upload at once and wait for all of them.

        Progress is reported in completion order. On the first failure the
        remaining uploads are cancelled.

        Returns:
            Upload records in the same order as ``units``
        """
        if not units:
            return []

        total = len(units)
        completed = 0

        async def upload_one(unit: SplitUnit) -> UploadRecord:
            nonlocal completed
            record = await self._store(unit)
            completed += 1
            if on_progress:
                on_progress(make_progress_event(completed, total, unit.filename, record.file_id))
            return record

        tasks = [asyncio.ensure_future(upload_one(unit)) for unit in units]
        await wait_all_or_first_failure(tasks)
        return [task.result() for task in tasks]

    async def upload_whole(
        self,
        document: SourceDocument,
        on_progress: Optional[ProgressObserver] = None,
    ) -> UploadRecord:
        """Upload an unsplit document as a single unit spanning all pages."""
        unit = SplitUnit(
            index=1,
            page_range=document.full_range,
            filename=document.filename,
            content=document.content,
        )
        records = await self.upload_sequential([unit], on_progress)
        return records[0]

