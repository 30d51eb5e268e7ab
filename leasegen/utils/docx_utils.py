# leasegen/utils/docx_utils.py

from io import BytesIO
from typing import Any, Dict
from zipfile import BadZipFile

from docx.opc.exceptions import PackageNotFoundError
from docxtpl import DocxTemplate
from jinja2 import Environment, Undefined
from jinja2.exceptions import TemplateError

from leasegen.documents.exceptions import WordTemplateError
from leasegen.utils.logger import get_logger

logger = get_logger(__name__)


class EmptyUndefined(Undefined):
    """
    Undefined that renders as an empty string, so placeholders for missing
    keys disappear and ``{% if key %}`` blocks collapse.
    """

    def __str__(self):
        return ""

    def __bool__(self):
        return False

    def __getattr__(self, name):
        if name.startswith("__"):
            raise AttributeError(name)
        return self.__class__(name=f"{self._undefined_name}.{name}")

    def __getitem__(self, name):
        return self.__class__(name=f"{self._undefined_name}[{name}]")


def _blank_nulls(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: ("" if value is None else value) for key, value in data.items()}


def fill_word_template(template_path: str, data: Dict[str, Any]) -> bytes:
    """
    Render a .docx template with lease data.

    Args:
        template_path: Path of the .docx template
        data: Lease data; missing or null values render as ""

    Returns:
        The rendered document as bytes

    Raises:
        WordTemplateError: If the package is malformed or the template syntax is invalid
    """
    try:
        template = DocxTemplate(template_path)
        template.render(
            _blank_nulls(data),
            jinja_env=Environment(undefined=EmptyUndefined),
            autoescape=True,
        )
        output = BytesIO()
        template.save(output)
    except (PackageNotFoundError, BadZipFile) as e:
        raise WordTemplateError(
            f"Word template is not a valid .docx package: {template_path}",
            {"template": template_path},
        ) from e
    except TemplateError as e:
        raise WordTemplateError(
            f"Word template could not be rendered: {e}",
            {"template": template_path},
        ) from e
    except (KeyError, ValueError, SyntaxError) as e:
        # missing zip members or corrupt XML inside the package
        raise WordTemplateError(
            f"Word template is malformed: {e}", {"template": template_path}
        ) from e

    logger.info("Word template rendered", template=template_path)
    return output.getvalue()
