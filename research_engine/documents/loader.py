"""Loader for plain-text corpus files."""

from pathlib import Path

from research_engine.documents.models import Document
from research_engine.exceptions import DocumentError, ErrorCode


class TextFileLoader:
    """Loader for plain text files.

    Supports .txt, .md, and other text-based files.
    """

    SUPPORTED_EXTENSIONS = {".txt", ".md", ".markdown", ".rst", ".text"}

    def __init__(self, encoding: str = "utf-8") -> None:
        self.encoding = encoding

    def load(self, source: str | Path) -> Document:
        """Load a text file as a document.

        Args:
            source: Path to the text file.

        Returns:
            Document whose source is the file name.

        Raises:
            DocumentError: If file cannot be read.
        """
        path = Path(source)

        if not path.is_file():
            raise DocumentError(
                f"File not found: {path}",
                code=ErrorCode.DOCUMENT_NOT_FOUND,
                details={"path": str(path)},
            )

        try:
            content = path.read_text(encoding=self.encoding)
        except UnicodeDecodeError as e:
            raise DocumentError(
                f"Failed to decode file: {path}",
                code=ErrorCode.DOCUMENT_PARSE_ERROR,
                details={"path": str(path), "encoding": self.encoding, "error": str(e)},
            ) from e
        except OSError as e:
            raise DocumentError(
                f"Failed to read file: {path}",
                code=ErrorCode.DOCUMENT_PARSE_ERROR,
                details={"path": str(path), "error": str(e)},
            ) from e

        return Document.from_text(content=content, source=path.name, path=str(path))

    def supports(self, source: str | Path) -> bool:
        """Check if source has a supported extension."""
        return Path(source).suffix.lower() in self.SUPPORTED_EXTENSIONS

    def discover(self, root: str | Path) -> list[Path]:
        """List supported files under a file or directory, sorted."""
        root = Path(root)
        if root.is_file():
            return [root] if self.supports(root) else []
        return sorted(p for p in root.rglob("*") if p.is_file() and self.supports(p))
