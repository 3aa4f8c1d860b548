import pytest

from services.exceptions import ValidationError
from services.sheet_schema import ID_FIELD, build_schema, decode_positive_int, encode_int


@pytest.mark.parametrize("cell, expected", [
    ("3", 3), (" 12 ", 12), ("3.0", 3), ("1,200", 1200), ("0", 0), ("-4", 0), ("", 0), ("abc", 0), ("inf", 0),
])
def test_decode_positive_int(cell, expected):
    assert decode_positive_int(cell) == expected


def test_encode_int_blanks_zero():
    assert encode_int(0) == ""
    assert encode_int(7) == 7


def test_default_schema_has_no_id_column():
    schema = build_schema()
    assert schema.labels == ["Locker", "Floor", "No", "Address", "Description", "Medical Name", "Label"]
    assert schema.id_label is None


def test_id_label_adds_id_field_last():
    schema = build_schema(id_label="รหัส")
    assert schema.labels[-1] == "รหัส"
    assert schema.by_label("รหัส").field_name == ID_FIELD
    assert schema.id_label == "รหัส"


def test_custom_labels():
    schema = build_schema([{"field": "address", "label": "ที่อยู่"}, {"field": "locker_name", "label": "ตู้"}])
    assert schema.labels == ["ที่อยู่", "ตู้"]
    assert schema.by_field("address").column_label == "ที่อยู่"


@pytest.mark.parametrize("columns", [
    [{"field": "colour", "label": "Colour"}],
    [{"field": ID_FIELD, "label": "ID"}],
    [{"field": "address"}],
])
def test_bad_columns_rejected(columns):
    with pytest.raises(ValidationError):
        build_schema(columns)


def test_duplicate_labels_rejected():
    with pytest.raises(ValidationError):
        build_schema([{"field": "address", "label": "X"}, {"field": "label", "label": "X"}])


def test_config_columns_build_a_schema(config_manager):
    schema = build_schema(config_manager.sheet_columns(), config_manager.id_column()["label"])
    assert schema.id_label == config_manager.id_column()["label"]
    assert "Address" in schema.labels
