from io import BytesIO
from pathlib import Path
from typing import Callable, List, Optional

import pytest
from docx import Document
from fastapi.testclient import TestClient
from pypdf import PdfWriter
from reportlab.lib.pagesizes import letter
from reportlab.pdfgen import canvas

from leasegen.core.config import Settings, get_settings
from leasegen.documents.exceptions import StorageException
from leasegen.documents.services import get_converter, get_storage
from leasegen.main import lease_app

CONVERTED_PAGE_WIDTH = 300


def build_blank_pdf(widths: List[int], height: int = 400) -> bytes:
    writer = PdfWriter()
    for width in widths:
        writer.add_blank_page(width=width, height=height)
    output = BytesIO()
    writer.write(output)
    return output.getvalue()


def build_form_pdf(pages: int = 2) -> bytes:
    """Pet addendum form: text, checkbox, radio group and dropdown on page one."""
    buffer = BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=letter)
    form = pdf.acroForm

    pdf.drawString(72, 740, "Pet Addendum")
    pdf.drawString(72, 700, "Tenant")
    form.textfield(name="tenant1_name", x=150, y=690, width=250, height=20)
    pdf.drawString(72, 660, "Monthly rent")
    form.textfield(name="Monthly Rent", x=150, y=650, width=250, height=20)
    pdf.drawString(72, 620, "Has pet")
    form.checkbox(name="has_pet", x=150, y=610, size=20)
    pdf.drawString(72, 580, "Pet type")
    form.radio(name="pet_type", value="dog", selected=False, x=150, y=570, size=20)
    form.radio(name="pet_type", value="cat", selected=False, x=200, y=570, size=20)
    pdf.drawString(72, 540, "Pet size")
    form.choice(name="pet_size", value="small", options=["small", "medium", "large"],
                x=150, y=530, width=120, height=20)
    pdf.showPage()

    for number in range(2, pages + 1):
        pdf.drawString(72, 740, f"Pet Addendum page {number}")
        pdf.showPage()

    pdf.save()
    return buffer.getvalue()


def build_docx(paragraphs: List[str]) -> bytes:
    document = Document()
    for text in paragraphs:
        document.add_paragraph(text)
    output = BytesIO()
    document.save(output)
    return output.getvalue()


class FakeConverter:
    """Stands in for LibreOffice: returns a blank PDF per conversion."""

    page_width = CONVERTED_PAGE_WIDTH

    def __init__(self, pages: int = 3, error: Optional[Exception] = None):
        self.pages = pages
        self.error = error
        self.calls = []

    def convert_docx_to_pdf(self, docx_bytes: bytes, name: str = "document") -> bytes:
        self.calls.append(name)
        if self.error:
            raise self.error
        return build_blank_pdf([CONVERTED_PAGE_WIDTH] * self.pages)


class FakeStorage:
    """Records published packages instead of uploading them."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.published = []

    def publish_package(self, pdf_bytes: bytes, lease_data: dict) -> dict:
        if self.fail:
            raise StorageException("Failed to upload document: AccessDenied")
        self.published.append((pdf_bytes, lease_data))
        file_name = f"lease_{lease_data.get('lease_id', 'test')}.pdf"
        return {
            "fileName": file_name,
            "key": f"leases/{file_name}",
            "pdfUrl": f"https://storage.test/leases/{file_name}?download",
            "previewUrl": f"https://storage.test/leases/{file_name}?inline",
        }


@pytest.fixture()
def lease_data() -> dict:
    return {
        "lease_id": "TEST-001",
        "lease_number": "LS-TEST-001",
        "tenant1_name": "John Smith",
        "tenant1_email": "john@example.com",
        "tenant2_name": "",
        "landlord_name": "Alice Landlord",
        "property_address": "123 Main Street, Apt 4B",
        "monthly_rent": "2500",
        "has_pet": "Yes",
        "pet_type": "dog",
        "pet_size": "medium",
    }


@pytest.fixture()
def templates_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "templates"
    directory.mkdir()
    (directory / "lease.docx").write_bytes(build_docx([
        "Lease {{ lease_number }}",
        "Tenant: {{ tenant1_name }}",
        "Second tenant: {% if tenant2_name %}{{ tenant2_name }}{% endif %}",
        "Rent: {{ monthly_rent }}",
    ]))
    (directory / "pet-addendum.pdf").write_bytes(build_form_pdf(pages=2))
    (directory / "rules.pdf").write_bytes(build_blank_pdf([500, 500, 500, 500]))
    (directory / "notes.txt").write_text("not a template")
    return directory


@pytest.fixture()
def pdf_factory() -> Callable[..., bytes]:
    return build_blank_pdf


@pytest.fixture()
def form_pdf() -> bytes:
    return build_form_pdf(pages=2)


@pytest.fixture()
def docx_factory() -> Callable[[List[str]], bytes]:
    return build_docx


@pytest.fixture()
def test_settings(templates_dir: Path, tmp_path: Path) -> Settings:
    return Settings(
        _env_file=None,
        environment="test",
        templates_dir=str(templates_dir),
        temp_dir=str(tmp_path / "scratch"),
        s3_bucket_name="lease-bucket",
    )


@pytest.fixture()
def fake_converter() -> FakeConverter:
    return FakeConverter(pages=3)


@pytest.fixture()
def fake_storage() -> FakeStorage:
    return FakeStorage()


@pytest.fixture()
def client(test_settings, fake_converter, fake_storage):
    lease_app.dependency_overrides[get_settings] = lambda: test_settings
    lease_app.dependency_overrides[get_converter] = lambda: fake_converter
    lease_app.dependency_overrides[get_storage] = lambda: fake_storage
    try:
        yield TestClient(lease_app)
    finally:
        lease_app.dependency_overrides.clear()
