# leasegen/documents/schemas.py

"""
Pydantic schemas for the document generation API
"""

from typing import Any, Dict, List, Optional
from enum import Enum as PyEnum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


# === Enums ===

class DocumentType(str, PyEnum):
    """Template type inferred from the file extension."""
    WORD = "word"
    PDF = "pdf"
    UNKNOWN = "unknown"


class DocumentStatus(str, PyEnum):
    """Outcome of one requested document."""
    SUCCESS = "success"
    SKIPPED = "skipped"
    ERROR = "error"


class CamelModel(BaseModel):
    """Base schema exchanging camelCase JSON."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# === Requests ===

class GeneratePackageRequest(CamelModel):
    """Schema for package generation requests."""
    lease_data: Dict[str, Any]
    documents: List[str]
    # document name -> {form field name -> data key or "literal:<value>"}
    field_mappings: Optional[Dict[str, Dict[str, str]]] = None


class GenerateLeaseRequest(CamelModel):
    """Schema for single-lease requests: one main template plus addenda."""
    lease_data: Dict[str, Any]
    template_name: str = Field(..., min_length=1)
    selected_addenda: List[str] = Field(default_factory=list)
    field_mappings: Optional[Dict[str, Dict[str, str]]] = None

    def to_package_request(self) -> GeneratePackageRequest:
        return GeneratePackageRequest(
            lease_data=self.lease_data,
            documents=[self.template_name, *self.selected_addenda],
            field_mappings=self.field_mappings,
        )


class FillTestRequest(CamelModel):
    """Schema for the single-document test endpoints."""
    lease_data: Dict[str, Any]
    template_name: str = Field(..., min_length=1)
    field_mappings: Optional[Dict[str, str]] = None


# === Responses ===

class DocumentResult(CamelModel):
    """Per-document status in the package manifest."""
    name: str
    type: DocumentType
    status: DocumentStatus
    message: Optional[str] = None
    page_count: Optional[int] = None
    pdf_kind: Optional[str] = None


class PackageMetadata(CamelModel):
    """Counts and per-document results of a package."""
    documents_requested: int
    documents_processed: int
    documents: List[DocumentResult]


class GeneratePackageResponse(CamelModel):
    """Schema for package generation responses."""
    success: bool = True
    pdf_url: str
    preview_url: str
    file_name: str
    generated_at: str
    metadata: PackageMetadata
    warnings: Optional[List[str]] = None


class TemplateInfo(CamelModel):
    """A file in the templates directory."""
    name: str
    type: DocumentType
    size: int


class TemplateListResponse(CamelModel):
    """Schema for template listing responses."""
    success: bool = True
    count: int
    templates: List[TemplateInfo]


class FormFieldInfo(CamelModel):
    """One PDF form field."""
    name: str
    type: str
    value: Optional[str] = None
    options: Optional[List[str]] = None


class FormFieldsResponse(CamelModel):
    """Schema for form field inspection responses."""
    success: bool = True
    file_name: str
    field_count: int
    fields: List[FormFieldInfo]
