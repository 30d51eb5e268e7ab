# leasegen/documents/services.py

"""
Business logic for lease document generation.
Resolves templates, fills them in request order and publishes the merged package.
"""

import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from fastapi import Depends

from leasegen.core.config import Settings, get_settings
from leasegen.documents.exceptions import (
    DocumentBaseException, InvalidRequestException, NoDocumentsProcessedException,
    PDFFillError, TemplateNotFoundException, UnsupportedDocumentException,
)
from leasegen.documents.schemas import (
    DocumentResult, DocumentStatus, DocumentType, FormFieldInfo, FormFieldsResponse,
    GeneratePackageRequest, GeneratePackageResponse, PackageMetadata, TemplateInfo,
    TemplateListResponse,
)
from leasegen.documents.utils import (
    infer_document_type, prepare_lease_data, resolve_template_path,
)
from leasegen.utils.docx_utils import fill_word_template
from leasegen.utils.logger import get_logger
from leasegen.utils.office_converter import OfficeConverter
from leasegen.utils.pdf_filler_utils import fill_pdf_document, inspect_form_fields, load_pdf
from leasegen.utils.pdf_merger import count_pages, merge_pdfs
from leasegen.utils.s3_utils import S3Utils

logger = get_logger(__name__)


def get_storage(settings: Settings = Depends(get_settings)) -> S3Utils:
    """Storage publisher built from the injected settings."""
    return S3Utils(settings)


def get_converter(settings: Settings = Depends(get_settings)) -> OfficeConverter:
    """Word to PDF converter built from the injected settings."""
    return OfficeConverter(
        soffice_path=settings.soffice_path,
        timeout=settings.conversion_timeout,
        temp_dir=settings.temp_dir,
    )


class DocumentService:
    """
    Service layer for template discovery and lease package assembly.
    Documents are processed one after another in request order.
    """

    def __init__(
        self,
        settings: Settings = Depends(get_settings),
        converter: OfficeConverter = Depends(get_converter),
    ):
        self.settings = settings
        self.converter = converter

    # === Template discovery ===

    def list_templates(self) -> TemplateListResponse:
        """List every file in the templates directory with its inferred type."""
        templates_dir = self.settings.templates_dir
        if not os.path.isdir(templates_dir):
            logger.warning("Templates directory does not exist", templates_dir=templates_dir)
            return TemplateListResponse(count=0, templates=[])

        templates = []
        for entry in sorted(os.scandir(templates_dir), key=lambda e: e.name):
            if entry.is_file() and not entry.name.startswith("."):
                templates.append(TemplateInfo(
                    name=entry.name,
                    type=infer_document_type(entry.name),
                    size=entry.stat().st_size,
                ))
        return TemplateListResponse(count=len(templates), templates=templates)

    def get_template(self, name: str, expected: Optional[DocumentType] = None) -> Path:
        """
        Resolve a single template.

        Raises:
            TemplateNotFoundException: If the template does not exist
            UnsupportedDocumentException: If it is not of the expected type
        """
        path = resolve_template_path(self.settings.templates_dir, name)
        if path is None:
            raise TemplateNotFoundException(name)
        if expected and infer_document_type(path.name) != expected:
            raise UnsupportedDocumentException(
                path.name, "Word" if expected == DocumentType.WORD else "PDF"
            )
        return path

    def inspect_template_fields(self, name: str) -> FormFieldsResponse:
        """List the form fields of a PDF template."""
        path = self.get_template(name, DocumentType.PDF)
        try:
            fields = inspect_form_fields(load_pdf(path.read_bytes()))
        except Exception as e:
            logger.error("PDF form fields could not be read", template=path.name, error=str(e))
            raise PDFFillError(f"PDF could not be read: {path.name}") from e

        return FormFieldsResponse(
            file_name=path.name,
            field_count=len(fields),
            fields=[FormFieldInfo(**form_field.to_dict()) for form_field in fields],
        )

    # === Single document rendering ===

    def fill_word_document(self, name: str, lease_data: Dict[str, Any]) -> bytes:
        """Fill a Word template and convert it to PDF."""
        path = self.get_template(name, DocumentType.WORD)
        docx_bytes = fill_word_template(str(path), prepare_lease_data(lease_data))
        return self.converter.convert_docx_to_pdf(docx_bytes, name=path.name)

    def fill_pdf_template(
        self, name: str, lease_data: Dict[str, Any], overrides: Optional[Dict[str, str]] = None
    ) -> bytes:
        """Fill a PDF template (static PDFs come back unchanged)."""
        path = self.get_template(name, DocumentType.PDF)
        output, _, _ = fill_pdf_document(path.read_bytes(), prepare_lease_data(lease_data), overrides)
        return output

    def _render_document(
        self,
        path: Path,
        doc_type: DocumentType,
        data: Dict[str, Any],
        overrides: Optional[Dict[str, str]],
    ) -> Tuple[bytes, Optional[str], Optional[str]]:
        if doc_type == DocumentType.WORD:
            docx_bytes = fill_word_template(str(path), data)
            return self.converter.convert_docx_to_pdf(docx_bytes, name=path.name), None, None

        if doc_type == DocumentType.PDF:
            output, pdf_kind, report = fill_pdf_document(path.read_bytes(), data, overrides)
            message = None
            if report and report.failed:
                message = f"{len(report.failed)} field(s) could not be filled: {', '.join(report.failed)}"
            return output, pdf_kind.value, message

        raise UnsupportedDocumentException(path.name)

    # === Package assembly ===

    def assemble_package(
        self,
        lease_data: Dict[str, Any],
        documents: List[str],
        field_mappings: Optional[Dict[str, Dict[str, str]]] = None,
    ) -> Tuple[bytes, List[DocumentResult], List[str]]:
        """
        Fill every requested document and merge the results in request order.

        Missing or failing documents are skipped with a warning.

        Returns:
            The package PDF, per-document results and warnings

        Raises:
            NoDocumentsProcessedException: If no document could be processed
            PDFMergeError: If the processed documents cannot be merged
        """
        data = prepare_lease_data(lease_data)
        field_mappings = field_mappings or {}
        buffers: List[bytes] = []
        results: List[DocumentResult] = []
        warnings: List[str] = []

        for name in documents:
            path = resolve_template_path(self.settings.templates_dir, name)
            if path is None:
                logger.warning("Requested template not found", template=name)
                warnings.append(f"Template not found: {name}")
                results.append(DocumentResult(
                    name=name,
                    type=infer_document_type(name),
                    status=DocumentStatus.SKIPPED,
                    message="Template not found",
                ))
                continue

            doc_type = infer_document_type(path.name)
            overrides = field_mappings.get(name) or field_mappings.get(path.name)
            logger.info("Processing document", template=path.name, type=doc_type.value)

            try:
                pdf_bytes, pdf_kind, message = self._render_document(path, doc_type, data, overrides)
                page_count = count_pages(pdf_bytes)
            except DocumentBaseException as e:
                logger.warning("Document processing failed", template=path.name, error=e.message)
                warnings.append(f"{name}: {e.message}")
                results.append(DocumentResult(
                    name=name, type=doc_type, status=DocumentStatus.ERROR, message=e.message
                ))
                continue
            except Exception as e:
                logger.error("Unexpected error processing document", template=path.name, error=str(e), exc_info=True)
                warnings.append(f"{name}: {e}")
                results.append(DocumentResult(
                    name=name, type=doc_type, status=DocumentStatus.ERROR, message=str(e)
                ))
                continue

            if message:
                warnings.append(f"{name}: {message}")
            buffers.append(pdf_bytes)
            results.append(DocumentResult(
                name=name,
                type=doc_type,
                status=DocumentStatus.SUCCESS,
                message=message,
                page_count=page_count,
                pdf_kind=pdf_kind,
            ))

        if not buffers:
            raise NoDocumentsProcessedException(warnings)

        if len(buffers) == 1:
            return buffers[0], results, warnings
        return merge_pdfs(buffers), results, warnings

    def generate_package(
        self, request: GeneratePackageRequest, storage: S3Utils
    ) -> GeneratePackageResponse:
        """
        Assemble the requested documents and publish the package.

        Raises:
            InvalidRequestException: If no documents are requested
            StorageException: If the package cannot be uploaded
        """
        if not request.documents:
            raise InvalidRequestException("At least one document is required")

        logger.info("Generating lease package", documents=request.documents)
        package, results, warnings = self.assemble_package(
            request.lease_data, request.documents, request.field_mappings
        )

        published = storage.publish_package(package, request.lease_data)
        processed = sum(1 for result in results if result.status == DocumentStatus.SUCCESS)

        logger.info(
            "Lease package generated",
            file_name=published["fileName"],
            documents_processed=processed,
            warnings=len(warnings),
        )
        return GeneratePackageResponse(
            pdf_url=published["pdfUrl"],
            preview_url=published["previewUrl"],
            file_name=published["fileName"],
            generated_at=datetime.now(timezone.utc).isoformat(),
            metadata=PackageMetadata(
                documents_requested=len(request.documents),
                documents_processed=processed,
                documents=results,
            ),
            warnings=warnings or None,
        )
