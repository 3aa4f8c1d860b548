import pytest

from services.exceptions import ValidationError
from services.grid_codec import (
    GridCodec,
    append_range,
    column_letter_to_number,
    column_number_to_letter,
    escape_cell,
    find_column,
    last_valid_column,
    next_empty_row,
    read_columns,
    sheet_range,
    unescape_cell,
    write_range,
)
from services.inventory_models import Cell, InventoryRecord
from services.sheet_schema import build_schema
from tests.test_helpers import HEADER, make_tab, medicine_row


@pytest.fixture
def codec():
    return GridCodec(build_schema(id_label="ID"))


class TestColumnLetters:
    @pytest.mark.parametrize("number, letters", [
        (1, "A"), (26, "Z"), (27, "AA"), (52, "AZ"), (53, "BA"), (702, "ZZ"), (703, "AAA"), (16384, "XFD"),
    ])
    def test_known_values(self, number, letters):
        assert column_number_to_letter(number) == letters
        assert column_letter_to_number(letters) == number

    def test_round_trip(self):
        for n in range(1, 5000):
            assert column_letter_to_number(column_number_to_letter(n)) == n

    def test_lowercase_letters(self):
        assert column_letter_to_number("ab") == 28

    @pytest.mark.parametrize("bad", [0, -1])
    def test_non_positive_number_rejected(self, bad):
        with pytest.raises(ValueError):
            column_number_to_letter(bad)

    @pytest.mark.parametrize("bad", ["", "A1", "É"])
    def test_bad_letters_rejected(self, bad):
        with pytest.raises(ValueError):
            column_letter_to_number(bad)


class TestRanges:
    def test_write_range_uses_widest_row(self):
        assert write_range("B3", [[1, 2, 3], [4]]) == "B3:D4"

    def test_write_range_single_cell(self):
        assert write_range("H2", [["abc"]]) == "H2:H2"

    def test_write_range_rejects_empty_values(self):
        with pytest.raises(ValidationError):
            write_range("A1", [])

    def test_write_range_rejects_bad_start(self):
        with pytest.raises(ValidationError):
            write_range("2B", [["x"]])

    def test_next_empty_row_ignores_trailing_blank_rows(self):
        tab = make_tab(0, "Medicines", [HEADER, medicine_row(), ["", ""], medicine_row(address="A-1-2"), [""]])
        # header + 3 data rows where the last used one is sheet row 4
        assert next_empty_row(tab) == 5

    def test_next_empty_row_of_empty_tab(self):
        assert next_empty_row(make_tab(0, "Empty", [])) == 1

    def test_append_range(self):
        tab = make_tab(0, "Medicines", [HEADER, medicine_row()])
        assert append_range(tab, [["a", "b"]]) == "A3:B3"


class TestEscaping:
    def test_escape_round_trip(self):
        text = 'Take 1, twice\r\ndaily "after meals"'
        escaped = escape_cell(text)
        assert "," not in escaped and "\n" not in escaped and '"' not in escaped
        assert unescape_cell(escaped) == text

    def test_placeholder_text_in_a_cell_is_kept(self, codec):
        tab = make_tab(0, "Medicines", [
            HEADER,
            medicine_row(address="A-1-1", description="costs $5, see ${DELIMITER}"),
        ])
        [row] = codec.decode(tab)
        assert row.description == "costs $5, see ${DELIMITER}"


class TestSheetRange:
    def test_plain_title(self):
        assert sheet_range("Medicines", "A1:B2") == "'Medicines'!A1:B2"

    def test_apostrophes_doubled(self):
        assert sheet_range("Bob's 'Stock'", "H2:H2") == "'Bob''s ''Stock'''!H2:H2"


class TestColumns:
    def test_last_valid_column_values_only(self):
        row = [Cell("a"), Cell(""), Cell("c"), Cell("", {"bold": True})]
        assert last_valid_column(row) == 3

    def test_last_valid_column_with_format(self):
        row = [Cell("a"), Cell(""), Cell("c"), Cell("", {"bold": True})]
        assert last_valid_column(row, include_format=True) == 4

    def test_last_valid_column_empty_row(self):
        assert last_valid_column([Cell(), Cell()]) == 0

    def test_read_columns_pads_to_data_width(self):
        tab = make_tab(0, "Medicines", [["Locker", "Floor"], ["A", "1", "extra"]])
        columns = read_columns(tab)
        assert [c.label for c in columns] == ["Locker", "Floor", ""]

    def test_read_columns_trims_unused_header_cells(self):
        tab = make_tab(0, "Medicines", [["Locker", "Floor", "", ""], ["A", "1"]])
        assert [c.label for c in read_columns(tab)] == ["Locker", "Floor"]

    def test_read_columns_counts_header_only_column(self):
        tab = make_tab(0, "Medicines", [HEADER + ["ID"], medicine_row()])
        assert find_column(read_columns(tab, ignore_user_format=True), "ID") == 7

    def test_read_columns_ignores_formats_when_asked(self):
        header = [Cell("Locker", {"textFormat": {"bold": True}}), Cell("", {"textFormat": {"bold": True}})]
        tab = make_tab(0, "Medicines", [header])
        assert len(read_columns(tab)) == 2
        columns = read_columns(tab, ignore_user_format=True)
        assert len(columns) == 1
        assert columns[0].cell_format is None

    def test_read_columns_exclude_empty(self):
        tab = make_tab(0, "Medicines", [["Locker", "", "Floor"]])
        assert [c.label for c in read_columns(tab, exclude_empty=True)] == ["Locker", "Floor"]

    def test_find_column_ignores_whitespace(self):
        tab = make_tab(0, "Medicines", [["Locker", " ID "]])
        assert find_column(read_columns(tab), "ID") == 1
        assert find_column(read_columns(tab), "Missing") == -1


class TestDecode:
    def test_decodes_typed_rows_in_order(self, codec):
        tab = make_tab(0, "Medicines", [
            HEADER + ["ID"],
            medicine_row("A", "2", "3", "A-2-3", "Pain relief", "Paracetamol", "Tylenol") + ["m-1"],
            medicine_row("B", "1", "1", "B-1-1"),
        ])
        rows = codec.decode(tab)

        assert [r.row_number for r in rows] == [1, 2]
        first = rows[0]
        assert (first.locker_name, first.floor, first.position, first.address) == ("A", 2, 3, "A-2-3")
        assert (first.description, first.medical_name, first.label) == ("Pain relief", "Paracetamol", "Tylenol")
        assert first.medicine_id == "m-1"
        assert rows[1].medicine_id == ""

    def test_special_characters_survive(self, codec):
        text = 'Take 1, twice\ndaily "after meals"'
        tab = make_tab(0, "Medicines", [HEADER, medicine_row(description=text, label="a,b")])
        row = codec.decode(tab)[0]
        assert row.description == text
        assert row.label == "a,b"

    def test_blank_rows_skipped_but_positions_kept(self, codec):
        tab = make_tab(0, "Medicines", [
            HEADER, medicine_row(address="A-1-1"), [""] * 7, medicine_row(address="A-1-3"),
        ])
        rows = codec.decode(tab)
        assert [(r.row_number, r.address) for r in rows] == [(1, "A-1-1"), (3, "A-1-3")]

    def test_blank_rows_kept_when_asked(self, codec):
        tab = make_tab(0, "Medicines", [HEADER, [""] * 7, medicine_row()])
        rows = codec.decode(tab, exclude_empty_rows=False)
        assert len(rows) == 2
        assert rows[0].is_invalid()

    def test_short_rows_are_padded(self, codec):
        tab = make_tab(0, "Medicines", [HEADER, ["A", "1"]])
        row = codec.decode(tab)[0]
        assert row.locker_name == "A" and row.floor == 1
        assert row.address == "" and row.label == ""

    def test_column_count_override(self, codec):
        tab = make_tab(0, "Medicines", [HEADER, medicine_row(address="A-1-1", label="x")])
        row = codec.decode(tab, column_count=3)[0]
        assert row.position == 1
        assert row.address == "" and row.label == ""

    def test_column_order_follows_header_labels(self, codec):
        header = ["Address", "Locker", "Floor", "No"]
        tab = make_tab(0, "Medicines", [header, ["X-9", "Z", "4", "5"]])
        row = codec.decode(tab)[0]
        assert (row.address, row.locker_name, row.floor, row.position) == ("X-9", "Z", 4, 5)

    def test_non_numeric_numbers_decode_to_zero(self, codec):
        tab = make_tab(0, "Medicines", [HEADER, medicine_row(floor="top", no="-2")])
        row = codec.decode(tab)[0]
        assert row.floor == 0 and row.position == 0

    def test_header_only_tab(self, codec):
        assert codec.decode(make_tab(0, "Medicines", [HEADER])) == []
        assert codec.decode(make_tab(0, "Medicines", [])) == []


class TestEncode:
    def test_encode_in_column_order(self, codec):
        record = InventoryRecord(
            medicine_id="m-1", warehouse_id="w", locker_id="l", floor=2, position=0,
            address="A-2", medical_name="Ibuprofen",
        )
        matrix = codec.encode([record], ["ID", "Address", "Floor", "No", "Medical Name", "Unknown"])
        assert matrix == [["m-1", "A-2", 2, "", "Ibuprofen", ""]]

    def test_encode_mappings_with_default_order(self, codec):
        matrix = codec.encode([{"locker_name": "A", "floor": 1, "address": "A-1"}])
        assert matrix == [["A", 1, "", "A-1", "", "", "", ""]]
