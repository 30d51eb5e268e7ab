# leasegen/documents/router.py

"""
FastAPI router for lease document generation.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from leasegen.documents.schemas import (
    FillTestRequest, FormFieldsResponse, GenerateLeaseRequest, GeneratePackageRequest,
    GeneratePackageResponse, TemplateListResponse,
)
from leasegen.documents.services import DocumentService, get_storage
from leasegen.utils.logger import get_logger
from leasegen.utils.s3_utils import S3Utils

logger = get_logger(__name__)
router = APIRouter(tags=["Documents"], prefix="/api")


def _pdf_response(pdf_bytes: bytes, file_name: str) -> Response:
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{file_name}"'},
    )


# ===================== Package generation =====================

@router.post(
    "/generate-package",
    response_model=GeneratePackageResponse,
    response_model_exclude_none=True,
    summary="Fill, merge and publish a lease package",
)
def generate_package(
    request: GeneratePackageRequest,
    document_service: DocumentService = Depends(),
    storage: S3Utils = Depends(get_storage),
):
    """
    Generate one PDF package from lease data and an ordered list of templates.

    - Word templates are rendered and converted to PDF
    - Fillable PDFs are filled and flattened, static PDFs pass through
    - Missing or failing documents are reported in ``warnings``
    - The package is uploaded and returned as signed URLs
    """
    return document_service.generate_package(request, storage)


@router.post(
    "/generate-lease",
    response_model=GeneratePackageResponse,
    response_model_exclude_none=True,
    summary="Generate a lease from a main template and addenda",
)
def generate_lease(
    request: GenerateLeaseRequest,
    document_service: DocumentService = Depends(),
    storage: S3Utils = Depends(get_storage),
):
    """
    Generate a lease package from ``templateName`` followed by ``selectedAddenda``.
    Names may omit the extension.
    """
    return document_service.generate_package(request.to_package_request(), storage)


# ===================== Templates =====================

@router.get("/templates", response_model=TemplateListResponse, summary="List available templates")
def list_templates(document_service: DocumentService = Depends()):
    """List every file in the templates directory with its inferred type."""
    return document_service.list_templates()


@router.get(
    "/templates/{template_name}/fields",
    response_model=FormFieldsResponse,
    response_model_exclude_none=True,
    summary="Inspect the form fields of a PDF template",
)
def get_template_fields(template_name: str, document_service: DocumentService = Depends()):
    """Return each form field's name, type and, for choice fields, its options."""
    return document_service.inspect_template_fields(template_name)


# ===================== Test endpoints =====================

@router.post("/test/fill-word", summary="Fill a Word template and return the PDF")
def test_fill_word(request: FillTestRequest, document_service: DocumentService = Depends()):
    """Render and convert one Word template without uploading it."""
    pdf_bytes = document_service.fill_word_document(request.template_name, request.lease_data)
    return _pdf_response(pdf_bytes, "test-word.pdf")


@router.post("/test/fill-pdf", summary="Fill a PDF template and return the PDF")
def test_fill_pdf(request: FillTestRequest, document_service: DocumentService = Depends()):
    """Fill one PDF template without uploading it."""
    pdf_bytes = document_service.fill_pdf_template(
        request.template_name, request.lease_data, request.field_mappings
    )
    return _pdf_response(pdf_bytes, "test-pdf.pdf")
