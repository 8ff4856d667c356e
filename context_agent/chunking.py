"""
Text Chunking Module

WHY CHUNKING IS NECESSARY:
1. Embedding providers limit how much text fits in one request
2. Embeddings work better on focused, coherent text
3. Retrieval is more precise with smaller, specific chunks

STRATEGY: Fixed Size Chunking with Overlap
   - Collapse whitespace, then cut every chunk_size characters
   - Each window starts `overlap` characters before the previous one ended
   - Pros: Simple, predictable, works on any text (page dumps, PDFs, notes)
   - Cons: May cut mid-sentence, which the overlap partly compensates for

WHY OVERLAP:
When we split "The policy is 30 days. Contact support for help."
into two chunks, the second chunk loses context about "the policy."
Overlap keeps some shared text so context isn't completely lost.
"""

import math
import re
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

# Document loaders
import PyPDF2

ELLIPSIS = "..."

_WHITESPACE = re.compile(r"\s+")


def utc_now() -> str:
    """Current time as an ISO-8601 UTC string (the stored timestamp format)."""
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Chunk:
    """
    The unit of indexing: one segment of ingested text.

    WHY TRACK METADATA:
    - id: Unique within the store, lets callers reference a chunk
    - source: Where the text came from (shown to the model as a citation)
    - embedding: Set once when the chunk is created, never edited afterwards
    - created_at: When it was indexed (older stores may lack it)
    """
    content: str
    source: Optional[str] = None
    embedding: Optional[List[float]] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: Optional[str] = field(default_factory=utc_now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "content": self.content,
            "source": self.source,
            "embedding": self.embedding,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Chunk":
        embedding = data.get("embedding")
        if embedding is not None:
            embedding = [float(x) for x in embedding]
            if not all(math.isfinite(x) for x in embedding):
                raise ValueError(f"Embedding of chunk {data.get('id')!r} has non-finite values")
        return cls(
            id=data["id"],
            content=data["content"],
            source=data.get("source"),
            embedding=embedding,
            created_at=data.get("created_at"),
        )

    def __repr__(self):
        preview = self.content[:50] + "..." if len(self.content) > 50 else self.content
        return f"Chunk({self.source}, id={self.id[:8]}, text='{preview}')"


def normalize_whitespace(text: str) -> str:
    """Collapse runs of whitespace to a single space and trim."""
    return _WHITESPACE.sub(" ", text).strip()


def truncate(text: str, max_chars: Optional[int]) -> str:
    """
    Head-cut text to at most max_chars, ending with a visible marker.

    Not summarization: the head is kept verbatim and "..." shows that
    something was dropped. max_chars=None leaves the text alone.
    """
    if max_chars is None or len(text) <= max_chars:
        return text
    if max_chars <= len(ELLIPSIS):
        return ELLIPSIS[:max_chars]
    return text[:max_chars - len(ELLIPSIS)] + ELLIPSIS


def chunk_text(text: str, chunk_size: int, overlap: int) -> List[str]:
    """
    Split text into overlapping fixed-size segments.

    Args:
        text: Raw text, normalized before splitting
        chunk_size: Maximum characters per segment
        overlap: Characters shared between consecutive segments

    Returns:
        List of segments, empty when the text is blank

    HOW IT WORKS:
    1. Segment covers [start, start + chunk_size), clamped to the text length
    2. The next segment starts at end - overlap
    3. Stop once a segment reaches the end of the text

    Example (chunk_size=10, overlap=3, 25 characters):
        starts at 0, 7, 14, 21
    """
    if chunk_size <= 0:
        raise ValueError(f"chunk_size must be positive, got {chunk_size}")
    if overlap < 0 or overlap >= chunk_size:
        # A window that never advances would loop forever
        raise ValueError(
            f"overlap must be in [0, chunk_size); got overlap={overlap}, chunk_size={chunk_size}"
        )

    normalized = normalize_whitespace(text)
    if not normalized:
        return []

    segments = []
    start = 0
    length = len(normalized)

    while start < length:
        end = min(start + chunk_size, length)
        segment = normalized[start:end].strip()
        if segment:
            segments.append(segment)
        if end == length:
            break
        start = max(end - overlap, 0)

    return segments


class TextChunker:
    """
    Split ingested text into segments using the configured sizes.

    WHY A CLASS:
    - Validates the sizes once, at construction
    - The pipeline holds one and reuses it for every ingest
    """

    def __init__(self, chunk_size: int = 1000, chunk_overlap: int = 200):
        """
        Initialize the chunker.

        Args:
            chunk_size: Target size for each chunk in characters
            chunk_overlap: How many characters to overlap between chunks
        """
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        if chunk_overlap < 0 or chunk_overlap >= chunk_size:
            raise ValueError(
                f"chunk_overlap must be in [0, chunk_size); "
                f"got {chunk_overlap} with chunk_size={chunk_size}"
            )
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    def split(self, text: str) -> List[str]:
        return chunk_text(text, self.chunk_size, self.chunk_overlap)


class DocumentLoader:
    """
    Load documents from files so they can be ingested like page text.

    WHY A SEPARATE CLASS:
    - Single responsibility: Only handles file I/O
    - Easy to add new formats
    """

    @staticmethod
    def load(file_path: str) -> tuple[str, dict]:
        """
        Load a document and return (text, metadata).

        Returns:
            tuple: (document_text, metadata_dict)
        """
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        suffix = path.suffix.lower()

        if suffix in (".txt", ".md"):
            return DocumentLoader._load_txt(path)
        elif suffix == ".pdf":
            return DocumentLoader._load_pdf(path)
        else:
            raise ValueError(f"Unsupported file format: {suffix}")

    @staticmethod
    def _load_txt(path: Path) -> tuple[str, dict]:
        """Load a text or markdown file."""
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
        return text, {"source": str(path), "format": path.suffix.lower().lstrip(".")}

    @staticmethod
    def _load_pdf(path: Path) -> tuple[str, dict]:
        """Load a PDF file, one extracted page after another."""
        text_parts = []

        with open(path, "rb") as f:
            reader = PyPDF2.PdfReader(f)
            page_count = len(reader.pages)

            for page in reader.pages:
                text_parts.append(page.extract_text() or "")

        return "\n\n".join(text_parts), {
            "source": str(path),
            "format": "pdf",
            "page_count": page_count
        }
