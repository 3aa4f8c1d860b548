# services/sheet_schema.py
"""
Static column schema for the inventory tab.

Each field of a ``SheetRow`` is mapped to a column label together with the
functions that turn a cell string into the field value and back. The schema is
built once from ``config.json`` at startup; nothing inspects the row type at
call time.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from services.exceptions import ValidationError

ID_FIELD = "medicine_id"


def decode_text(value: str) -> str:
    return ("" if value is None else str(value)).strip()


def encode_text(value: Any) -> str:
    return "" if value is None else str(value)


def decode_positive_int(value: str) -> int:
    """Non-numeric, zero or negative cells decode to 0."""
    text = decode_text(value).replace(",", "")
    try:
        number = int(float(text)) if "." in text else int(text)
    except (ValueError, OverflowError):
        return 0
    return number if number > 0 else 0


def encode_int(value: Any) -> Any:
    return value if value else ""


@dataclass(frozen=True)
class FieldSpec:
    field_name: str
    column_label: str
    decode: Callable[[str], Any] = decode_text
    encode: Callable[[Any], Any] = encode_text


# field name -> (decode, encode)
FIELD_CODECS: Dict[str, tuple] = {
    "locker_name": (decode_text, encode_text),
    "floor": (decode_positive_int, encode_int),
    "position": (decode_positive_int, encode_int),
    "address": (decode_text, encode_text),
    "description": (decode_text, encode_text),
    "medical_name": (decode_text, encode_text),
    "label": (decode_text, encode_text),
    ID_FIELD: (decode_text, encode_text),
}

DEFAULT_COLUMNS = [
    {"field": "locker_name", "label": "Locker"},
    {"field": "floor", "label": "Floor"},
    {"field": "position", "label": "No"},
    {"field": "address", "label": "Address"},
    {"field": "description", "label": "Description"},
    {"field": "medical_name", "label": "Medical Name"},
    {"field": "label", "label": "Label"},
]


class SheetSchema:
    """Ordered field specs; lookups by field name or by column label."""

    def __init__(self, fields: List[FieldSpec]):
        labels = [f.column_label for f in fields]
        if len(set(labels)) != len(labels):
            raise ValidationError(f"duplicate column labels in sheet schema: {labels}")
        self.fields = list(fields)
        self._by_label = {f.column_label: f for f in fields}
        self._by_field = {f.field_name: f for f in fields}

    def __iter__(self):
        return iter(self.fields)

    def __len__(self):
        return len(self.fields)

    @property
    def labels(self) -> List[str]:
        return [f.column_label for f in self.fields]

    def by_label(self, label: str) -> Optional[FieldSpec]:
        return self._by_label.get(label)

    def by_field(self, field_name: str) -> Optional[FieldSpec]:
        return self._by_field.get(field_name)

    @property
    def id_label(self) -> Optional[str]:
        spec = self.by_field(ID_FIELD)
        return spec.column_label if spec else None


def build_schema(columns: List[dict] | None = None, id_label: str | None = None) -> SheetSchema:
    """
    Build the schema from ``[{field, label}, ...]`` config entries.
    Pass ``id_label`` to include the identifier column (identifier mode).
    """
    fields = []
    for col in columns or DEFAULT_COLUMNS:
        name, label = col.get("field"), col.get("label")
        if name not in FIELD_CODECS or name == ID_FIELD:
            raise ValidationError(f"unknown sheet field: {name!r}")
        if not label:
            raise ValidationError(f"missing column label for field {name!r}")
        decode, encode = FIELD_CODECS[name]
        fields.append(FieldSpec(name, label, decode, encode))

    if id_label:
        decode, encode = FIELD_CODECS[ID_FIELD]
        fields.append(FieldSpec(ID_FIELD, id_label, decode, encode))
    return SheetSchema(fields)
