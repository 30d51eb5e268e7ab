import subprocess
from pathlib import Path

import pytest

from leasegen.documents.exceptions import ConversionError, PDFNotGeneratedError
from leasegen.utils.office_converter import OfficeConverter

FAKE_PDF = b"%PDF-1.4 converted"


@pytest.fixture()
def scratch_dir(tmp_path: Path) -> Path:
    return tmp_path / "scratch"


@pytest.fixture()
def converter(scratch_dir: Path) -> OfficeConverter:
    return OfficeConverter(soffice_path="/opt/libreoffice/soffice", timeout=30, temp_dir=str(scratch_dir))


def _output_path(command: list) -> Path:
    out_dir = Path(command[command.index("--outdir") + 1])
    return out_dir / f"{Path(command[-1]).stem}.pdf"


def test_converts_and_cleans_up(monkeypatch, converter, scratch_dir):
    seen = {}

    def fake_run(command, **kwargs):
        seen["command"] = command
        seen["kwargs"] = kwargs
        assert Path(command[-1]).read_bytes() == b"docx-bytes"
        _output_path(command).write_bytes(FAKE_PDF)
        return subprocess.CompletedProcess(command, 0, b"", b"")

    monkeypatch.setattr("leasegen.utils.office_converter.subprocess.run", fake_run)

    assert converter.convert_docx_to_pdf(b"docx-bytes", name="lease.docx") == FAKE_PDF

    command = seen["command"]
    assert command[0] == "/opt/libreoffice/soffice"
    assert "--headless" in command
    assert command[command.index("--convert-to") + 1] == "pdf"
    assert seen["kwargs"]["timeout"] == 30
    assert list(scratch_dir.iterdir()) == []


def test_missing_executable(monkeypatch, converter):
    def fake_run(command, **kwargs):
        raise FileNotFoundError(command[0])

    monkeypatch.setattr("leasegen.utils.office_converter.subprocess.run", fake_run)

    with pytest.raises(ConversionError) as exc_info:
        converter.convert_docx_to_pdf(b"docx-bytes")
    assert "verify LibreOffice is installed" in exc_info.value.message


def test_timeout(monkeypatch, converter, scratch_dir):
    def fake_run(command, **kwargs):
        raise subprocess.TimeoutExpired(command, kwargs["timeout"])

    monkeypatch.setattr("leasegen.utils.office_converter.subprocess.run", fake_run)

    with pytest.raises(ConversionError) as exc_info:
        converter.convert_docx_to_pdf(b"docx-bytes")
    assert "timed out after 30s" in exc_info.value.message
    assert list(scratch_dir.iterdir()) == []


def test_process_failure(monkeypatch, converter):
    def fake_run(command, **kwargs):
        raise subprocess.CalledProcessError(77, command, stderr=b"Error: source file could not be loaded")

    monkeypatch.setattr("leasegen.utils.office_converter.subprocess.run", fake_run)

    with pytest.raises(ConversionError) as exc_info:
        converter.convert_docx_to_pdf(b"docx-bytes")
    assert exc_info.value.details["returncode"] == 77
    assert "could not be loaded" in exc_info.value.details["stderr"]


def test_clean_exit_without_output(monkeypatch, converter):
    monkeypatch.setattr(
        "leasegen.utils.office_converter.subprocess.run",
        lambda command, **kwargs: subprocess.CompletedProcess(command, 0, b"", b""),
    )

    with pytest.raises(PDFNotGeneratedError) as exc_info:
        converter.convert_docx_to_pdf(b"docx-bytes", name="lease.docx")
    assert exc_info.value.message == "PDF not generated"
    assert isinstance(exc_info.value, ConversionError)
