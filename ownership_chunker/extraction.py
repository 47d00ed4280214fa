"""
Fan-out of analysis requests over uploaded chunks.
"""

import asyncio
import logging
from typing import List, Optional, Sequence

from . import config
from .data_models import ExtractionResult, UploadRecord
from .document_service import DocumentService
from .errors import ExtractionError
from .response_parser import ResponseParser
from .tasks import wait_all_or_first_failure

logger = logging.getLogger(__name__)


class ExtractionFanout:
    """
    Issues one analysis request per uploaded file, all at the same time.

    Every request uses the same instruction text; only the attached file
    differs. Results come back in completion order.
    """

    def __init__(self, service: DocumentService, instructions: Optional[str] = None):
        self.service = service
        self.instructions = instructions or config.load_prompt(config.EXTRACTION_PROMPT_PATH)
        self.parser = ResponseParser()

    async def _analyze(self, file_id: str, results: List[ExtractionResult]) -> None:
        try:
            text = await self.service.analyze(file_id, self.instructions)
        except Exception as e:
            logger.error(f"Error analyzing file {file_id}: {str(e)}")
            raise ExtractionError(f"Analysis failed for file {file_id}: {str(e)}", file_id=file_id) from e

        self._check_payload(file_id, text)
        results.append(ExtractionResult(file_id=file_id, text=text))

    def _check_payload(self, file_id: str, text: str) -> None:
        # Malformed payloads are still passed on to the merge step
        try:
            self.parser.parse_relationships(text)
        except ValueError as e:
            logger.warning(f"Extraction response for {file_id} is not a relationship array: {str(e)}")
            logger.debug(f"Response preview: {text[:200]}...")

    async def run(self, records: Sequence[UploadRecord]) -> List[ExtractionResult]:
        """
        Analyze every record concurrently.

        Raises:
            ExtractionError: for the first failed request; the rest are cancelled
        """
        return await self.run_for_ids([record.file_id for record in records])

    async def run_for_ids(self, file_ids: Sequence[str]) -> List[ExtractionResult]:
        results: List[ExtractionResult] = []
        if not file_ids:
            return results

        logger.info(f"Sending {len(file_ids)} analysis requests")
        tasks = [asyncio.ensure_future(self._analyze(file_id, results)) for file_id in file_ids]
        await wait_all_or_first_failure(tasks)
        logger.info(f"Received {len(results)} extraction results")
        return results
