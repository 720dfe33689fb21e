from docflow.config.settings import Settings
from docflow.pdf.base import BasePdfPaginator
from docflow.pdf.pymupdf_adapter import PyMuPdfPaginator


class PaginatorFactory:
    """Creates the correct PDF paginator based on settings."""

    ADAPTERS: dict[str, type[BasePdfPaginator]] = {
        "pymupdf": PyMuPdfPaginator,
    }

    @classmethod
    def create(cls, settings: Settings) -> BasePdfPaginator:
        engine = settings.pdf_engine.lower()
        adapter_cls = cls.ADAPTERS.get(engine)
        if adapter_cls is None:
            raise ValueError(
                f"Unknown PDF engine '{engine}'. Choose from: {list(cls.ADAPTERS)}"
            )
        return adapter_cls()
