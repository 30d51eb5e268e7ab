# leasegen/utils/pdf_merger.py

from io import BytesIO
from typing import List

from pypdf import PdfReader, PdfWriter

from leasegen.documents.exceptions import PDFMergeError
from leasegen.utils.logger import get_logger

logger = get_logger(__name__)


def count_pages(pdf_bytes: bytes) -> int:
    """Number of pages of a PDF buffer."""
    return len(PdfReader(BytesIO(pdf_bytes)).pages)


def merge_pdfs(pdf_buffers: List[bytes]) -> bytes:
    """
    Concatenate PDFs into one document.

    Pages keep their order inside each input and the inputs keep list order.

    Args:
        pdf_buffers: PDF documents in output order

    Returns:
        The merged PDF as bytes

    Raises:
        PDFMergeError: If the list is empty or any input cannot be loaded
    """
    if not pdf_buffers:
        raise PDFMergeError("No PDFs to merge")

    writer = PdfWriter()
    for index, pdf_bytes in enumerate(pdf_buffers):
        try:
            reader = PdfReader(BytesIO(pdf_bytes))
            for page in reader.pages:
                writer.add_page(page)
        except Exception as e:
            logger.error("PDF could not be merged", index=index, error=str(e))
            raise PDFMergeError(
                f"Failed to merge document {index + 1}: {e}", {"index": index}
            ) from e

    output = BytesIO()
    try:
        writer.write(output)
    except Exception as e:
        raise PDFMergeError(f"Merged PDF could not be written: {e}") from e

    logger.info("PDFs merged", documents=len(pdf_buffers), pages=len(writer.pages))
    return output.getvalue()
