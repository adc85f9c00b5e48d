"""
Unit tests for CSV and printable exports
"""
import csv
import io
from datetime import datetime

from voterdesk.exports import CSV_HEADERS, export_filename, voters_csv, voters_print_html
from voterdesk.schemas import VoterRecord


def record(**overrides) -> VoterRecord:
    data = dict(
        id="v1", id_card_number="A100200", full_name="Ali", gender="Male", address="Blue House",
        island="Male", created_at=1, updated_at=1,
    )
    data.update(overrides)
    return VoterRecord(**data)


def test_csv_column_order_and_flags():
    text = voters_csv([record(has_voted=True, sadiq=True, phone_number="7771234")])
    rows = list(csv.reader(io.StringIO(text)))
    assert rows[0] == CSV_HEADERS
    assert rows[1] == [
        "A100200", "Ali", "Male", "Blue House", "Male", "7771234", "Independent",
        "Voted", "No", "Yes", "No", "",
    ]


def test_csv_quotes_every_field_and_doubles_quotes():
    line = voters_csv([record(notes='a "b", c')]).splitlines()[1]
    assert line.startswith('"A100200","Ali"')
    assert line.endswith('"a ""b"", c"')


def test_csv_header_only_for_empty_list():
    assert voters_csv([]) == ",".join(CSV_HEADERS) + "\n"


def test_print_html_counts_and_status():
    html = voters_print_html([record(), record(id="v2", has_voted=True)], heading="Male Voters")
    assert "<h1>Male Voters</h1>" in html
    assert "Total Records: 2" in html
    assert 'class="voted">Voted' in html
    assert 'class="eligible">Eligible' in html
    assert "Filter applied" not in html


def test_export_filename():
    assert export_filename("voters_list_export", "csv", datetime(2026, 3, 9)) == "voters_list_export_2026-03-09.csv"


def test_explicit_party_is_exported_as_is():
    row = voters_csv([record(registrar_party="MDP")]).splitlines()[1]
    assert '"MDP"' in row
