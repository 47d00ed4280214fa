"""
Shared fakes for the test suite.
"""

import io
import sys
import asyncio
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional, Set

# Add the project root to the Python path
sys.path.append(str(Path(__file__).parent.parent))

from pypdf import PdfWriter

from ownership_chunker.data_models import StoredFile
from ownership_chunker.document_service import DocumentService


def make_pdf(num_pages: int) -> bytes:
    """Build a PDF of blank pages; page i is 100 + i points wide."""
    writer = PdfWriter()
    for i in range(num_pages):
        writer.add_blank_page(width=100 + i, height=200)
    buffer = io.BytesIO()
    writer.write(buffer)
    return buffer.getvalue()


class FakeDocumentService(DocumentService):
    """In-memory document service that records every call."""

    def __init__(
        self,
        payloads: Optional[Dict[str, str]] = None,
        merge_response: str = '{"name": "Root"}',
        fail_uploads: Optional[Set[str]] = None,
        fail_analyses: Optional[Set[str]] = None,
        upload_delays: Optional[Dict[str, float]] = None,
        analysis_delays: Optional[Dict[str, float]] = None,
    ):
        self.payloads = payloads or {}
        self.merge_response = merge_response
        self.fail_uploads = fail_uploads or set()
        self.fail_analyses = fail_analyses or set()
        self.upload_delays = upload_delays or {}
        self.analysis_delays = analysis_delays or {}
        self.stored: List[dict] = []
        self.events: List[str] = []
        self.analyzed: List[str] = []
        self.cancelled: List[str] = []
        self.merge_calls: List[tuple] = []

    async def store(self, content, filename, mime_type="application/pdf"):
        self.events.append(f"store-start:{filename}")
        await asyncio.sleep(self.upload_delays.get(filename, 0))
        if filename in self.fail_uploads:
            raise ConnectionError(f"upload rejected for {filename}")
        file_id = f"file_{len(self.stored) + 1}"
        self.stored.append({"filename": filename, "content": content, "mime_type": mime_type, "file_id": file_id})
        self.events.append(f"store-done:{filename}")
        return StoredFile(file_id=file_id, filename=filename, created_at=datetime(2025, 1, 1, tzinfo=timezone.utc))

    async def analyze(self, file_id, instructions):
        try:
            await asyncio.sleep(self.analysis_delays.get(file_id, 0))
        except asyncio.CancelledError:
            self.cancelled.append(file_id)
            raise
        if file_id in self.fail_analyses:
            raise RuntimeError(f"analysis rejected for {file_id}")
        self.analyzed.append(file_id)
        return self.payloads.get(file_id, "[]")

    async def merge(self, system_instructions, text):
        self.merge_calls.append((system_instructions, text))
        return self.merge_response
