from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class PageRange:
    """Half-open interval [start, end) of 0-based page indices."""
    start: int
    end: int

    @property
    def page_count(self) -> int:
        return self.end - self.start

    @property
    def first_page(self) -> int:
        """1-based number of the first page in the range."""
        return self.start + 1

    @property
    def last_page(self) -> int:
        """1-based number of the last page in the range."""
        return self.end

    def to_dict(self) -> dict:
        return {
            "start_page": self.first_page,
            "end_page": self.last_page,
            "page_count": self.page_count,
        }


@dataclass
class SplitUnit:
    """One standalone chunk document produced from a page range."""
    index: int  # 1-based
    page_range: PageRange
    filename: str
    content: bytes = field(repr=False)


@dataclass(frozen=True)
class StoredFile:
    """What the document service reports back after storing a file."""
    file_id: str
    filename: str
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class UploadRecord:
    """A successfully uploaded chunk, referenced by filename and page range."""
    index: int
    filename: str
    page_range: PageRange
    file_id: str
    service_filename: Optional[str] = None
    uploaded_at: Optional[datetime] = None

    def to_dict(self) -> dict:
        result = {
            "file_id": self.file_id,
            "filename": self.filename,
            "original_filename": self.service_filename,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
        }
        result.update(self.page_range.to_dict())
        return result


@dataclass
class ExtractionResult:
    file_id: str
    text: str


@dataclass
class Relationship:
    """A single parent-subsidiary pair as extracted from one chunk."""
    parent: str
    subsidiary: str
    equity: str = "not specified"


@dataclass
class ProgressEvent:
    current: int
    total: int
    percentage: int
    current_file: str
    file_id: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "current": self.current,
            "total": self.total,
            "percentage": self.percentage,
            "current_file": self.current_file,
            "file_id": self.file_id,
        }


@dataclass
class ConsolidatedTree:
    """
    Hierarchical ownership structure. The root is the ultimate parent and
    every child is a subsidiary of the node that holds it.
    """
    name: str
    attributes: Optional[Dict[str, str]] = None
    children: Optional[List["ConsolidatedTree"]] = None

    @classmethod
    def from_dict(cls, data: Any) -> "ConsolidatedTree":
        """
        Build a tree from parsed JSON, checking its shape on the way.

        Raises:
            ValueError: if a node is not an object with a string ``name``,
                ``attributes`` is not an object or ``children`` is not a list
        """
        if not isinstance(data, dict):
            raise ValueError(f"Tree node must be an object, got {type(data).__name__}")

        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            raise ValueError("Tree node is missing a non-empty 'name'")

        attributes = data.get("attributes")
        if attributes is not None:
            if not isinstance(attributes, dict):
                raise ValueError(f"'attributes' of node '{name}' must be an object")
            # The merge step sometimes emits numbers for equity values
            attributes = {str(key): str(value) for key, value in attributes.items()}

        children = data.get("children")
        if children is not None:
            if not isinstance(children, list):
                raise ValueError(f"'children' of node '{name}' must be a list")
            children = [cls.from_dict(child) for child in children]

        return cls(name=name, attributes=attributes, children=children)

    def to_dict(self) -> dict:
        result: Dict[str, Any] = {"name": self.name}
        if self.attributes is not None:
            result["attributes"] = dict(self.attributes)
        if self.children is not None:
            result["children"] = [child.to_dict() for child in self.children]
        return result

    def count_nodes(self) -> int:
        return 1 + sum(child.count_nodes() for child in self.children or [])


@dataclass
class SplitUploadResult:
    """Outcome of splitting a document and uploading its chunks."""
    success: bool
    message: str = ""
    total_pages: int = 0
    total_files: int = 0
    pages_per_file: Optional[int] = None
    split: bool = False
    uploaded_files: List[UploadRecord] = field(default_factory=list)
    error: Optional[str] = None
    details: Optional[str] = None

    @property
    def file_ids(self) -> List[str]:
        return [record.file_id for record in self.uploaded_files]

    def to_dict(self) -> dict:
        if not self.success:
            return {"success": False, "error": self.error, "details": self.details}
        return {
            "success": True,
            "message": self.message,
            "total_pages": self.total_pages,
            "total_files": self.total_files,
            "pages_per_file": self.pages_per_file,
            "split": self.split,
            "uploaded_files": [record.to_dict() for record in self.uploaded_files],
        }


@dataclass
class SplitWriteResult:
    """Outcome of writing chunk files to disk."""
    success: bool
    message: str = ""
    total_pages: int = 0
    files: List[str] = field(default_factory=list)
    error: Optional[str] = None
    details: Optional[str] = None

    def to_dict(self) -> dict:
        if not self.success:
            return {"success": False, "error": self.error, "details": self.details}
        return {
            "success": True,
            "message": self.message,
            "total_pages": self.total_pages,
            "files": list(self.files),
        }


@dataclass
class PipelineResult:
    """Outcome of a full extraction run."""
    success: bool
    output_path: Optional[str] = None
    tree: Optional[ConsolidatedTree] = None
    upload: Optional[SplitUploadResult] = None
    error: Optional[str] = None
    details: Optional[str] = None
    raw_text: Optional[str] = None

    def to_dict(self) -> dict:
        result: Dict[str, Any] = {"success": self.success}
        if self.success:
            result["output_path"] = self.output_path
            result["tree"] = self.tree.to_dict() if self.tree else None
        else:
            result["error"] = self.error
            result["details"] = self.details
            if self.raw_text is not None:
                result["raw_text"] = self.raw_text
        if self.upload is not None:
            result["upload"] = self.upload.to_dict()
        return result
