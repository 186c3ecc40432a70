from abc import ABC, abstractmethod


def render_pages(pages: list[str]) -> str:
    """Join page texts with a ``--- Page N ---`` marker before every page.

    Page markers let the extraction model report which page a bundled
    bill of lading starts on.
    """
    return "\n".join(
        f"--- Page {number} ---\n{text.strip()}" for number, text in enumerate(pages, start=1)
    ).strip()


class BasePdfExtractor(ABC):
    """Contract for PDF text extraction adapters."""

    @abstractmethod
    def extract_pages(self, pdf_bytes: bytes) -> list[str]:
        """Extract plain text per page.

        Raises:
            PdfExtractionError: if extraction fails for any reason.
        """

    def extract(self, pdf_bytes: bytes) -> str:
        return render_pages(self.extract_pages(pdf_bytes))
