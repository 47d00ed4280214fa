import io
import os
import logging
from pathlib import Path
from typing import Any, Dict, Iterator, List, Sequence, Union

from pypdf import PdfReader, PdfWriter
from pypdf.errors import PyPdfError

from .data_models import PageRange, SplitUnit
from .errors import MaterializationError
from .splitter import PageSplitter

logger = logging.getLogger(__name__)


def base_name_for(filename: str) -> str:
    """Strip directory components and a trailing ``.pdf`` from a filename."""
    name = os.path.basename(filename)
    if name.lower().endswith(".pdf"):
        name = name[:-4]
    return name


def part_filename(base_name: str, index: int, page_range: PageRange, ext: str = "pdf") -> str:
    """
    Name of the ``index``-th chunk (1-based), e.g. ``doc_part_2_pages_51-100.pdf``.
    """
    return f"{base_name}_part_{index}_pages_{page_range.first_page}-{page_range.last_page}.{ext}"


def count_pages(data: bytes) -> int:
    """Read back the page count of a PDF byte string."""
    try:
        return len(PdfReader(io.BytesIO(data)).pages)
    except (PyPdfError, ValueError) as e:
        raise MaterializationError(f"Could not read PDF: {str(e)}") from e


class SourceDocument:
    """
    A loaded input PDF. The byte content and page count never change after
    loading; chunks are always built into new documents.
    """

    def __init__(self, filename: str, content: bytes):
        """
        Load a PDF from memory.

        Args:
            filename: Original filename, used to name chunks
            content: Raw PDF bytes

        Raises:
            MaterializationError: if the bytes are not a readable PDF
        """
        self.filename = os.path.basename(filename)
        self.content = bytes(content)
        try:
            self._reader = PdfReader(io.BytesIO(self.content))
            self.page_count = len(self._reader.pages)
        except (PyPdfError, ValueError) as e:
            logger.error(f"Error loading PDF {self.filename}: {str(e)}")
            raise MaterializationError(f"Could not load PDF '{self.filename}': {str(e)}") from e

    @classmethod
    def load(cls, pdf_path: Union[str, Path]) -> "SourceDocument":
        logger.info(f"Loading PDF from {pdf_path}")
        with open(pdf_path, "rb") as f:
            content = f.read()
        document = cls(os.path.basename(str(pdf_path)), content)
        logger.info(f"Successfully loaded {document.page_count} pages from PDF")
        logger.debug(f"PDF metadata: {document.get_metadata()}")
        return document

    @classmethod
    def from_bytes(cls, content: bytes, filename: str) -> "SourceDocument":
        return cls(filename, content)

    @property
    def base_name(self) -> str:
        return base_name_for(self.filename)

    @property
    def reader(self) -> PdfReader:
        return self._reader

    @property
    def full_range(self) -> PageRange:
        return PageRange(0, self.page_count)

    def get_metadata(self) -> Dict[str, Any]:
        """
        Extract basic metadata from the document.

        Returns:
            Dictionary with title, author, producer and page count
        """
        info = self._reader.metadata
        return {
            "title": info.title if info and info.title else None,
            "author": info.author if info and info.author else None,
            "producer": info.producer if info and info.producer else None,
            "page_count": self.page_count,
        }


class ChunkMaterializer:
    """
    Copies page ranges of a source document into standalone PDF chunks.
    """

    def __init__(self, naming=part_filename, ext: str = "pdf"):
        """
        Initialize the materializer.

        Args:
            naming: Function ``(base_name, index, page_range, ext) -> filename``
            ext: File extension of the generated chunks
        """
        self.naming = naming
        self.ext = ext

    def materialize(self, document: SourceDocument, page_range: PageRange, index: int) -> SplitUnit:
        """
        Build one chunk containing exactly the pages of ``page_range``.

        Args:
            document: Source document (left untouched)
            page_range: Pages to copy
            index: 1-based sequence number of the chunk

        Returns:
            SplitUnit with freshly written PDF bytes
        """
        if not 0 <= page_range.start < page_range.end <= document.page_count:
            raise MaterializationError(
                f"Page range {page_range.first_page}-{page_range.last_page} is out of bounds "
                f"for '{document.filename}' with {document.page_count} pages"
            )

        filename = self.naming(document.base_name, index, page_range, self.ext)
        try:
            writer = PdfWriter()
            for page_index in range(page_range.start, page_range.end):
                writer.add_page(document.reader.pages[page_index])
            buffer = io.BytesIO()
            writer.write(buffer)
        except (PyPdfError, ValueError, KeyError) as e:
            logger.error(f"Error building {filename}: {str(e)}")
            raise MaterializationError(f"Could not build chunk '{filename}': {str(e)}") from e

        return SplitUnit(index=index, page_range=page_range, filename=filename, content=buffer.getvalue())

    def materialize_all(self, document: SourceDocument, ranges: Sequence[PageRange]) -> Iterator[SplitUnit]:
        for index, page_range in enumerate(ranges, start=1):
            yield self.materialize(document, page_range, index)


def write_split_files(
    document: SourceDocument,
    pages_per_file: int,
    output_dir: Union[str, Path],
    materializer: ChunkMaterializer = None,
) -> List[Path]:
    """
    Split a document and write every chunk into ``output_dir``.

    Returns:
        Paths of the written files, in page order. Empty when the document
        does not need splitting.
    """
    materializer = materializer or ChunkMaterializer()
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    written = []
    ranges = PageSplitter(pages_per_file).split(document.page_count)
    for unit in materializer.materialize_all(document, ranges):
        path = output_dir / unit.filename
        path.write_bytes(unit.content)
        logger.info(f"Saved {unit.filename} ({unit.page_range.page_count} pages)")
        written.append(path)
    return written
