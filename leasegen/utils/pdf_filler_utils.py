# leasegen/utils/pdf_filler_utils.py

from dataclasses import dataclass, field
from enum import Enum
from io import BytesIO
from typing import Any, Callable, Dict, List, Optional, Tuple

from pypdf import PdfReader, PdfWriter
from pypdf.generic import NameObject

from leasegen.documents.exceptions import FieldValueError, PDFFillError
from leasegen.utils.field_mapper import resolve_field_value
from leasegen.utils.logger import get_logger

logger = get_logger(__name__)

# /Ff bits for button fields
FF_RADIO = 1 << 15
FF_PUSHBUTTON = 1 << 16

OFF_STATE = "/Off"
CHECKED_VALUES = {"true", "x", "yes"}


class FieldKind(str, Enum):
    """Form field kinds the filler knows how to set."""
    TEXT = "text"
    CHECKBOX = "checkbox"
    RADIO = "radio"
    DROPDOWN = "dropdown"
    UNSUPPORTED = "unsupported"


class PDFKind(str, Enum):
    """How a PDF template is handled."""
    FILLABLE = "fillable"
    STATIC = "static"


@dataclass
class FormField:
    """A terminal form field found in the AcroForm tree."""
    name: str
    kind: FieldKind
    value: Optional[str] = None
    options: List[str] = field(default_factory=list)
    # dropdown display text -> export value
    labels: Dict[str, str] = field(default_factory=dict)
    states: List[str] = field(default_factory=list)

    @property
    def on_state(self) -> str:
        for state in self.states:
            if state != OFF_STATE:
                return state
        return "/Yes"

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"name": self.name, "type": self.kind.value}
        if self.value is not None:
            result["value"] = self.value
        if self.kind in (FieldKind.RADIO, FieldKind.DROPDOWN):
            result["options"] = self.options
        return result


@dataclass
class FillReport:
    """Outcome of filling one PDF."""
    filled: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)


def _resolve(obj):
    return obj.get_object() if obj is not None else None


def _field_kind(attrs: Dict[str, Any]) -> FieldKind:
    field_type = attrs.get("/FT")
    flags = int(attrs.get("/Ff", 0) or 0)
    if field_type == "/Tx":
        return FieldKind.TEXT
    if field_type == "/Btn":
        if flags & FF_PUSHBUTTON:
            return FieldKind.UNSUPPORTED
        if flags & FF_RADIO:
            return FieldKind.RADIO
        return FieldKind.CHECKBOX
    if field_type == "/Ch":
        return FieldKind.DROPDOWN
    return FieldKind.UNSUPPORTED


def _widget_states(widgets: List[Any]) -> List[str]:
    states: List[str] = []
    for widget in widgets:
        appearance = _resolve(widget.get("/AP"))
        if not appearance:
            continue
        normal = _resolve(appearance.get("/N"))
        if not hasattr(normal, "keys"):
            continue
        for state in normal.keys():
            if str(state) not in states:
                states.append(str(state))
    return states


def _choice_options(opt) -> List[Tuple[str, str]]:
    options = []
    for entry in _resolve(opt) or []:
        entry = _resolve(entry)
        if isinstance(entry, list):
            # [export value, display text]
            options.append((str(_resolve(entry[0])), str(_resolve(entry[-1]))))
        else:
            options.append((str(entry), str(entry)))
    return options


def _build_form_field(name: str, attrs: Dict[str, Any], widgets: List[Any]) -> FormField:
    kind = _field_kind(attrs)
    value = attrs.get("/V")
    form_field = FormField(
        name=name,
        kind=kind,
        value=str(value) if value is not None and not isinstance(value, list) else None,
    )
    if kind in (FieldKind.CHECKBOX, FieldKind.RADIO):
        form_field.states = _widget_states(widgets)
        if kind == FieldKind.RADIO:
            form_field.options = [s.lstrip("/") for s in form_field.states if s != OFF_STATE]
    elif kind == FieldKind.DROPDOWN:
        choices = _choice_options(attrs.get("/Opt"))
        form_field.options = [export for export, _ in choices]
        form_field.labels = {label: export for export, label in choices}
    return form_field


def _walk_fields(node, parent_name: str, inherited: Dict[str, Any], out: List[FormField]) -> None:
    node = _resolve(node)
    partial = node.get("/T")
    if partial is not None:
        name = f"{parent_name}.{partial}" if parent_name else str(partial)
    else:
        name = parent_name

    attrs = dict(inherited)
    for key in ("/FT", "/Ff", "/V", "/Opt"):
        if key in node:
            attrs[key] = _resolve(node.get(key))

    kids = [_resolve(kid) for kid in _resolve(node.get("/Kids")) or []]
    field_kids = [kid for kid in kids if "/T" in kid]
    if field_kids:
        for kid in field_kids:
            _walk_fields(kid, name, attrs, out)
        return

    if name:
        widgets = kids or [node]
        out.append(_build_form_field(name, attrs, widgets))


def inspect_form_fields(reader: PdfReader) -> List[FormField]:
    """
    List the terminal form fields of a loaded PDF, in AcroForm order.

    Args:
        reader: A loaded PDF

    Returns:
        One FormField per named field; empty when the PDF has no AcroForm
    """
    root = _resolve(reader.trailer.get("/Root"))
    acro_form = _resolve(root.get("/AcroForm")) if root else None
    if not acro_form:
        return []

    fields: List[FormField] = []
    for node in _resolve(acro_form.get("/Fields")) or []:
        _walk_fields(node, "", {}, fields)
    return fields


def is_checked_value(value: Any) -> bool:
    """True, "true", "X" and "Yes" check a box; anything else leaves it unchecked."""
    if value is True:
        return True
    if isinstance(value, str):
        return value.strip().lower() in CHECKED_VALUES
    return False


def _text_value(form_field: FormField, value: Any) -> str:
    return str(value)


def _checkbox_value(form_field: FormField, value: Any) -> str:
    return form_field.on_state if is_checked_value(value) else OFF_STATE


def _radio_value(form_field: FormField, value: Any) -> str:
    wanted = str(value).strip().lstrip("/")
    for option in form_field.options:
        if option == wanted:
            return f"/{option}"
    raise FieldValueError(form_field.name, str(value), f"not one of {form_field.options}")


def _dropdown_value(form_field: FormField, value: Any) -> str:
    wanted = str(value).strip()
    if wanted in form_field.options:
        return wanted
    if wanted in form_field.labels:
        return form_field.labels[wanted]
    raise FieldValueError(form_field.name, str(value), f"not one of {form_field.options}")


FILL_STRATEGIES: Dict[FieldKind, Callable[[FormField, Any], str]] = {
    FieldKind.TEXT: _text_value,
    FieldKind.CHECKBOX: _checkbox_value,
    FieldKind.RADIO: _radio_value,
    FieldKind.DROPDOWN: _dropdown_value,
}


def _qualified_name(annotation) -> str:
    parts = []
    node = annotation
    while node is not None:
        partial = node.get("/T")
        if partial is not None:
            parts.insert(0, str(partial))
        node = _resolve(node.get("/Parent"))
    return ".".join(parts)


def load_pdf(pdf_bytes: bytes) -> PdfReader:
    """Load PDF bytes into a reader."""
    return PdfReader(BytesIO(pdf_bytes))


def classify_pdf(pdf_bytes: bytes) -> Tuple[PDFKind, int]:
    """
    Decide whether a PDF is a fillable form or a static document.

    A PDF whose form fields cannot be read is treated as static.

    Returns:
        The PDF kind and its number of form fields
    """
    try:
        field_count = len(inspect_form_fields(load_pdf(pdf_bytes)))
    except Exception as e:
        logger.warning("PDF form fields could not be read, treating as static", error=str(e))
        return PDFKind.STATIC, 0

    if field_count == 0:
        return PDFKind.STATIC, 0
    return PDFKind.FILLABLE, field_count


class PDFFormFiller:
    """
    Fills AcroForm fields from lease data and flattens the result.
    """

    def fill(
        self,
        pdf_bytes: bytes,
        data: Dict[str, Any],
        overrides: Optional[Dict[str, str]] = None,
        flatten: bool = True,
    ) -> Tuple[bytes, FillReport]:
        """
        Fill every resolvable field of a PDF form.

        Fields without a value are left unset. A field whose value cannot be
        applied is recorded in the report and the remaining fields are still filled.

        Args:
            pdf_bytes: The PDF form
            data: Lease data
            overrides: Optional form field name -> data key (or ``literal:`` value)
            flatten: Bake the values into the page content and drop the form

        Returns:
            The filled PDF bytes and a FillReport

        Raises:
            PDFFillError: If the PDF cannot be loaded or written
        """
        report = FillReport()
        try:
            reader = load_pdf(pdf_bytes)
            fields = inspect_form_fields(reader)
            writer = PdfWriter(clone_from=reader)
        except Exception as e:
            raise PDFFillError(f"PDF form could not be loaded: {e}") from e

        values: Dict[str, str] = {}
        for form_field in fields:
            if form_field.kind == FieldKind.UNSUPPORTED:
                report.skipped.append(form_field.name)
                continue

            raw_value = resolve_field_value(form_field.name, data, overrides)
            if raw_value is None:
                report.skipped.append(form_field.name)
                continue

            try:
                value = FILL_STRATEGIES[form_field.kind](form_field, raw_value)
                self._write_value(writer, form_field, value)
            except FieldValueError as e:
                logger.warning("Form field value rejected", field=form_field.name, error=e.message)
                report.failed[form_field.name] = e.message
                continue
            except Exception as e:
                logger.warning("Form field could not be filled", field=form_field.name, error=str(e))
                report.failed[form_field.name] = str(e)
                continue

            values[form_field.name] = value
            report.filled.append(form_field.name)

        if flatten:
            self._flatten(writer, fields, values)

        try:
            output = BytesIO()
            writer.write(output)
        except Exception as e:
            raise PDFFillError(f"Filled PDF could not be written: {e}") from e

        logger.info(
            "PDF form filled",
            filled=len(report.filled),
            skipped=len(report.skipped),
            failed=len(report.failed),
            flattened=flatten,
        )
        return output.getvalue(), report

    def _write_value(self, writer: PdfWriter, form_field: FormField, value: str) -> None:
        if form_field.kind in (FieldKind.CHECKBOX, FieldKind.RADIO):
            self._set_button_state(writer, form_field.name, value)
            return
        for page in writer.pages:
            if "/Annots" in page:
                writer.update_page_form_field_values(
                    page, {form_field.name: value}, auto_regenerate=False
                )

    def _set_button_state(self, writer: PdfWriter, field_name: str, state: str) -> None:
        matched = False
        for page in writer.pages:
            for annotation in _resolve(page.get("/Annots")) or []:
                annotation = _resolve(annotation)
                if annotation.get("/Subtype") != "/Widget":
                    continue
                target = annotation if "/T" in annotation else _resolve(annotation.get("/Parent"))
                if target is None or _qualified_name(target) != field_name:
                    continue
                matched = True
                normal = _resolve((_resolve(annotation.get("/AP")) or {}).get("/N"))
                on_widget = hasattr(normal, "keys") and state in normal
                annotation[NameObject("/AS")] = NameObject(state if on_widget else OFF_STATE)
                target[NameObject("/V")] = NameObject(state)
        if not matched:
            raise FieldValueError(field_name, state, "no widget found")

    def _flatten(self, writer: PdfWriter, fields: List[FormField], values: Dict[str, str]) -> None:
        """Bake field appearances into the pages, then remove the interactive form."""
        for form_field in fields:
            if form_field.kind == FieldKind.UNSUPPORTED:
                continue
            if form_field.name in values:
                value = values[form_field.name]
            elif form_field.kind in (FieldKind.CHECKBOX, FieldKind.RADIO):
                value = form_field.value or OFF_STATE
            else:
                value = form_field.value or ""
            try:
                for page in writer.pages:
                    if "/Annots" in page:
                        writer.update_page_form_field_values(
                            page, {form_field.name: value}, auto_regenerate=False, flatten=True
                        )
            except Exception as e:
                logger.warning("Form field appearance not flattened", field=form_field.name, error=str(e))

        writer.remove_annotations(subtypes="/Widget")
        if "/AcroForm" in writer._root_object:
            del writer._root_object["/AcroForm"]


def fill_pdf_document(
    pdf_bytes: bytes,
    data: Dict[str, Any],
    overrides: Optional[Dict[str, str]] = None,
) -> Tuple[bytes, PDFKind, Optional[FillReport]]:
    """
    Classify a PDF template and fill it when it is a form.

    Static PDFs are returned unchanged without touching the filler.

    Returns:
        Output bytes, the detected PDF kind and the fill report (None for static PDFs)
    """
    kind, field_count = classify_pdf(pdf_bytes)
    if kind == PDFKind.STATIC:
        logger.info("Static PDF passed through")
        return pdf_bytes, kind, None

    logger.info("Fillable PDF detected", field_count=field_count)
    output, report = PDFFormFiller().fill(pdf_bytes, data, overrides)
    return output, kind, report
