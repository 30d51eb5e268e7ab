# leasegen/utils/field_mapper.py

import re
from typing import Any, Dict, List, Optional

from leasegen.utils.logger import get_logger

logger = get_logger(__name__)

# Override values with this prefix are used verbatim instead of as a data key
LITERAL_PREFIX = "literal:"

_WORD_SPLIT = re.compile(r"[\s_\-]+")
_CAMEL_HUMP = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def _split_words(field_name: str) -> List[str]:
    words = []
    for chunk in _WORD_SPLIT.split(field_name.strip()):
        if chunk:
            words.extend(part for part in _CAMEL_HUMP.split(chunk) if part)
    return words


def to_camel_case(field_name: str) -> str:
    """
    Convert a space, underscore or hyphen separated name into camelCase.

    "Tenant Name" -> "tenantName", "tenant_name" -> "tenantName"
    """
    words = _split_words(field_name)
    if not words:
        return ""
    return words[0].lower() + "".join(word.capitalize() for word in words[1:])


def to_snake_case(field_name: str) -> str:
    """
    Convert a field name into snake_case.

    "Tenant Name" -> "tenant_name", "tenantName" -> "tenant_name"
    """
    return "_".join(word.lower() for word in _split_words(field_name))


def _is_present(value: Any) -> bool:
    return value is not None and value != ""


def resolve_field_value(
    field_name: str,
    data: Dict[str, Any],
    overrides: Optional[Dict[str, str]] = None,
) -> Optional[Any]:
    """
    Resolve the value a form field should receive from lease data.

    Resolution order:
        1. explicit override (``literal:`` values bypass the data lookup)
        2. exact key in lease data
        3. camelCase, then snake_case form of the field name
        4. nothing: the field is left unset

    Args:
        field_name: The form field name as stored in the PDF
        data: Lease data for the request
        overrides: Optional mapping of form field name to data key or literal

    Returns:
        The value to apply, or None when the field should be skipped
    """
    if overrides and field_name in overrides:
        target = overrides[field_name]
        if isinstance(target, str) and target.startswith(LITERAL_PREFIX):
            return target[len(LITERAL_PREFIX):]
        value = data.get(target)
        return value if _is_present(value) else None

    value = data.get(field_name)
    if _is_present(value):
        return value

    for candidate in (to_camel_case(field_name), to_snake_case(field_name)):
        if candidate and candidate != field_name:
            value = data.get(candidate)
            if _is_present(value):
                logger.debug("Field resolved by naming convention", field=field_name, key=candidate)
                return value

    return None
