# leasegen/documents/utils.py

import os
from datetime import date
from pathlib import Path
from typing import Any, Dict, Optional

from leasegen.documents.schemas import DocumentType

WORD_EXTENSIONS = {".docx"}
PDF_EXTENSIONS = {".pdf"}

# Tried in this order for names given without an extension
RESOLVE_EXTENSIONS = (".docx", ".pdf")

LEASE_DEFAULTS = {
    "pet_deposit": "0",
    "parking_fee": "0",
    "lease_term_months": "12",
    "utilities": "Tenant",
}


def infer_document_type(name: str) -> DocumentType:
    """Document type from the file extension."""
    extension = os.path.splitext(name)[1].lower()
    if extension in WORD_EXTENSIONS:
        return DocumentType.WORD
    if extension in PDF_EXTENSIONS:
        return DocumentType.PDF
    return DocumentType.UNKNOWN


def format_long_date(day: date) -> str:
    """e.g. October 19, 2026"""
    return f"{day.strftime('%B')} {day.day}, {day.year}"


def resolve_template_path(templates_dir: str, name: str) -> Optional[Path]:
    """
    Find a template in the flat templates directory.

    Names with a path component never resolve. A name without an extension
    is tried as .docx, then .pdf.

    Returns:
        The template path, or None when it does not exist
    """
    if not name or name in (".", "..") or "/" in name or "\\" in name:
        return None

    base = Path(templates_dir)
    candidates = [name]
    if not os.path.splitext(name)[1]:
        candidates += [f"{name}{extension}" for extension in RESOLVE_EXTENSIONS]

    for candidate in candidates:
        path = base / candidate
        if path.is_file():
            return path
    return None


def prepare_lease_data(lease_data: Dict[str, Any], today: Optional[date] = None) -> Dict[str, Any]:
    """
    Layer the lease defaults and today's date under the supplied data.

    Empty or null values of defaulted keys fall back to the default.
    """
    prepared = dict(lease_data)
    for key, default in LEASE_DEFAULTS.items():
        if prepared.get(key) in (None, ""):
            prepared[key] = default
    if prepared.get("current_date") in (None, ""):
        prepared["current_date"] = format_long_date(today or date.today())
    return prepared
