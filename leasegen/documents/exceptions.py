# leasegen/documents/exceptions.py

"""
Custom exceptions for the document assembly pipeline.
"""

import traceback
from typing import Optional

from fastapi import status
from fastapi.responses import JSONResponse


class DocumentBaseException(Exception):
    """Base exception for all document generation errors."""
    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)


class InvalidRequestException(DocumentBaseException):
    """Raised when a request is missing required fields."""


class TemplateNotFoundException(DocumentBaseException):
    """Raised when a named template does not exist in the templates directory."""
    def __init__(self, template_name: str):
        super().__init__(
            f"Template not found: {template_name}", {"template_name": template_name}
        )


class UnsupportedDocumentException(DocumentBaseException):
    """Raised when a template has an extension the pipeline cannot process."""
    def __init__(self, template_name: str, expected: Optional[str] = None):
        msg = f"Unsupported document type: {template_name}"
        if expected:
            msg = f"{template_name} is not a {expected} template"
        super().__init__(msg, {"template_name": template_name})


class WordTemplateError(DocumentBaseException):
    """Raised when a Word template is malformed or cannot be rendered."""


class ConversionError(DocumentBaseException):
    """Raised when the office converter fails, is missing or times out."""


class PDFNotGeneratedError(ConversionError):
    """Raised when the converter exits cleanly but leaves no PDF behind."""
    def __init__(self, source_name: str):
        super().__init__("PDF not generated", {"source": source_name})


class PDFFillError(DocumentBaseException):
    """Raised when a PDF cannot be filled or serialized."""


class FieldValueError(DocumentBaseException):
    """Raised for a single form field whose value cannot be applied."""
    def __init__(self, field_name: str, value: str, reason: str):
        super().__init__(
            f"Cannot set field '{field_name}' to '{value}': {reason}",
            {"field": field_name, "value": value},
        )


class PDFMergeError(DocumentBaseException):
    """Raised when the merge step cannot load or write a PDF."""


class StorageException(DocumentBaseException):
    """Raised when the package cannot be uploaded or signed."""


class NoDocumentsProcessedException(DocumentBaseException):
    """Raised when every requested document was missing or failed."""
    def __init__(self, warnings: Optional[list] = None):
        super().__init__("No documents processed", {"warnings": warnings or []})


def get_status_code(exc: DocumentBaseException) -> int:
    """Map an exception to the HTTP status the API answers with."""
    if isinstance(exc, InvalidRequestException):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, UnsupportedDocumentException):
        return status.HTTP_400_BAD_REQUEST
    if isinstance(exc, TemplateNotFoundException):
        return status.HTTP_404_NOT_FOUND
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def convert_to_error_response(
    exc: DocumentBaseException, include_details: bool = False
) -> JSONResponse:
    """
    Convert a DocumentBaseException to the API error body.

    Args:
        exc: The document exception to convert
        include_details: Attach details and the stack trace (non-production only)

    Returns:
        JSONResponse with the mapped status code and a ``{success, error}`` body
    """
    status_code = get_status_code(exc)
    content = {"success": False, "error": exc.message}
    if include_details:
        if exc.details:
            content["details"] = exc.details
        if status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            content["stack"] = "".join(
                traceback.format_exception(type(exc), exc, exc.__traceback__)
            )
    return JSONResponse(status_code=status_code, content=content)
