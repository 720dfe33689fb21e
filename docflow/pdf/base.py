from abc import ABC, abstractmethod
from pathlib import Path


class BasePdfPaginator(ABC):
    """Contract for all PDF normalization/pagination adapters."""

    @abstractmethod
    def normalize(self, source: Path, destination: Path) -> None:
        """Repair and optimize ``source`` into ``destination``.

        Common structural defects (damaged cross-reference tables, bad
        offsets) are repaired rather than rejected.

        Raises:
            PdfProcessingError: if the file is not a usable PDF.
        """

    @abstractmethod
    def page_count(self, path: Path) -> int:
        """Return the number of pages in a PDF.

        Raises:
            PdfProcessingError: if the file cannot be opened.
        """

    @abstractmethod
    def split(self, path: Path, output_dir: Path) -> list[Path]:
        """Write every page of ``path`` as its own PDF into ``output_dir``.

        Returns:
            Page file paths in page order (index 0 is page 1).

        Raises:
            PdfProcessingError: if splitting fails for any page.
        """
