# leasegen/utils/office_converter.py

import os
import subprocess
import tempfile
import time
from pathlib import Path
from typing import Optional

from leasegen.documents.exceptions import ConversionError, PDFNotGeneratedError
from leasegen.utils.logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONVERSION_TIMEOUT = 30


class OfficeConverter:
    """
    Converts Word documents to PDF with a headless LibreOffice process.
    """

    def __init__(
        self,
        soffice_path: str = "soffice",
        timeout: int = DEFAULT_CONVERSION_TIMEOUT,
        temp_dir: Optional[str] = None,
    ):
        self.soffice_path = soffice_path
        self.timeout = timeout
        self.temp_dir = temp_dir

    def build_command(self, input_path: Path, output_dir: Path) -> list:
        """Command line for one conversion; the profile dir keeps parallel runs apart."""
        profile_dir = output_dir / "profile"
        return [
            self.soffice_path,
            "--headless",
            "--norestore",
            f"-env:UserInstallation={profile_dir.as_uri()}",
            "--convert-to",
            "pdf",
            "--outdir",
            str(output_dir),
            str(input_path),
        ]

    def convert_docx_to_pdf(self, docx_bytes: bytes, name: str = "document") -> bytes:
        """
        Convert a .docx buffer to PDF bytes.

        The input and output files live in a temporary directory that is
        removed on every exit path.

        Args:
            docx_bytes: The Word document
            name: Source name used in log lines and errors

        Returns:
            The converted PDF as bytes

        Raises:
            ConversionError: If the converter is missing, fails or times out
            PDFNotGeneratedError: If the converter exits cleanly without output
        """
        if self.temp_dir:
            os.makedirs(self.temp_dir, exist_ok=True)

        with tempfile.TemporaryDirectory(prefix="leasegen_", dir=self.temp_dir) as work_dir:
            output_dir = Path(work_dir)
            stem = f"convert_{time.time_ns()}"
            input_path = output_dir / f"{stem}.docx"
            output_path = output_dir / f"{stem}.pdf"
            input_path.write_bytes(docx_bytes)

            command = self.build_command(input_path, output_dir)
            logger.info("Converting Word document to PDF", source=name, timeout=self.timeout)

            try:
                subprocess.run(
                    command,
                    cwd=work_dir,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.PIPE,
                    timeout=self.timeout,
                    check=True,
                )
            except FileNotFoundError as e:
                logger.error("Converter executable not found", converter=self.soffice_path)
                raise ConversionError(
                    "Document conversion failed, verify LibreOffice is installed",
                    {"source": name, "converter": self.soffice_path},
                ) from e
            except subprocess.TimeoutExpired as e:
                logger.error("Conversion timed out", source=name, timeout=self.timeout)
                raise ConversionError(
                    f"Document conversion timed out after {self.timeout}s, verify LibreOffice is installed",
                    {"source": name, "timeout": self.timeout},
                ) from e
            except subprocess.CalledProcessError as e:
                stderr = (e.stderr or b"").decode("utf-8", errors="replace").strip()
                logger.error("Conversion process failed", source=name, returncode=e.returncode, stderr=stderr)
                raise ConversionError(
                    "Document conversion failed, verify LibreOffice is installed",
                    {"source": name, "returncode": e.returncode, "stderr": stderr},
                ) from e

            if not output_path.exists():
                logger.error("Converter produced no PDF", source=name)
                raise PDFNotGeneratedError(name)

            pdf_bytes = output_path.read_bytes()

        logger.info("Word document converted", source=name, size=len(pdf_bytes))
        return pdf_bytes
