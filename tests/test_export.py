import csv
import io

from company_enrichment.models import EntryStatus, Identifier, PartialRecord, ResultEntry
from company_enrichment.output.export import FULL_COLUMNS, columns_for, flatten_entries, to_csv_text, write_csv


def _entries():
    return [
        ResultEntry(
            identifier=Identifier(index=0, name="Lombard Odier"),
            record=PartialRecord(
                company_name="Lombard Odier",
                homepage="https://www.lombardodier.com",
                ceo="Hubert Keller",
                cofounders=["Jean Odier", "Henri Hentsch"],
                source_urls=["https://a", "https://b"],
            ),
        ),
        ResultEntry(
            identifier=Identifier(index=1, name="Failing, Inc"),
            status=EntryStatus.ERROR,
            error="Answer API error: 401",
        ),
    ]


def test_columns_per_mode():
    assert columns_for("executives") == ["company_name", "ceo", "cofounders", "status", "error"]
    assert columns_for("combined") == FULL_COLUMNS
    assert columns_for("something-else") == FULL_COLUMNS


def test_flatten_joins_lists_and_falls_back_to_identifier_name():
    rows = flatten_entries(_entries(), "full")
    assert rows[0]["cofounders"] == "Jean Odier; Henri Hentsch"
    assert rows[0]["source_urls"] == "https://a | https://b"
    assert rows[1]["company_name"] == "Failing, Inc"
    assert rows[1]["status"] == "error"


def test_csv_quotes_and_keeps_order():
    text = to_csv_text(_entries(), "search")
    rows = list(csv.DictReader(io.StringIO(text)))
    assert list(rows[0].keys()) == columns_for("search")
    assert [r["company_name"] for r in rows] == ["Lombard Odier", "Failing, Inc"]
    assert rows[1]["error"] == "Answer API error: 401"


def test_write_csv(tmp_path):
    path = write_csv(_entries(), str(tmp_path / "out" / "results.csv"), "details")
    assert path.exists()
    assert path.read_text().splitlines()[0] == "company_name,phone,country,city,source_urls,status,error"
