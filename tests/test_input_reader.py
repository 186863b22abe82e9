import pandas as pd
import pytest

from company_enrichment.input.reader import build_identifiers, parse_names, read_input_file


def test_parse_names_splits_on_newlines_and_commas():
    text = "Lombard Odier, Julius Baer\n\n  Pictet  \r\nUBS,"
    assert parse_names(text) == ["Lombard Odier", "Julius Baer", "Pictet", "UBS"]


def test_build_identifiers_dedupes_case_insensitively():
    identifiers = build_identifiers(["Acme Corp", "  acme corp", "Globex", "ACME CORP", ""])
    assert [i.name for i in identifiers] == ["Acme Corp", "Globex"]
    assert [i.index for i in identifiers] == [0, 1]


def test_build_identifiers_keeps_urls_aligned_with_names():
    identifiers = build_identifiers(
        ["A", "a", "B"],
        source_urls=["https://dir/a", "https://dir/dup", " "],
    )
    assert identifiers[0].source_url == "https://dir/a"
    assert identifiers[1].name == "B"
    assert identifiers[1].source_url is None


def test_build_identifiers_caps_rows():
    identifiers = build_identifiers([f"Company {n}" for n in range(50)], max_rows=10)
    assert len(identifiers) == 10
    assert identifiers[-1].name == "Company 9"


def test_read_csv_with_header(tmp_path):
    path = tmp_path / "companies.csv"
    path.write_text(
        "Company,Profile URL,Country,City\n"
        "Lombard Odier,https://dir/profile/lo,Switzerland,Geneva\n"
        "Julius Baer,,,\n"
        "lombard odier,https://dir/profile/dup,,\n"
    )
    identifiers = read_input_file(str(path))
    assert [i.name for i in identifiers] == ["Lombard Odier", "Julius Baer"]
    assert identifiers[0].source_url == "https://dir/profile/lo"
    assert identifiers[0].location.describe() == "Geneva, Switzerland"
    assert identifiers[1].source_url is None
    assert identifiers[1].location is None


def test_read_csv_without_header_uses_first_cell(tmp_path):
    path = tmp_path / "plain.csv"
    path.write_text("Lombard Odier,ignored\nPictet,also ignored\n")
    identifiers = read_input_file(str(path))
    assert [i.name for i in identifiers] == ["Lombard Odier", "Pictet"]


def test_read_txt(tmp_path):
    path = tmp_path / "names.txt"
    path.write_text("Lombard Odier\nPictet, UBS\n")
    assert [i.name for i in read_input_file(str(path))] == ["Lombard Odier", "Pictet", "UBS"]


def test_read_excel(tmp_path):
    path = tmp_path / "companies.xlsx"
    pd.DataFrame({"Company Name": ["EFG", "Vontobel"], "Notes": ["x", "y"]}).to_excel(path, index=False)
    assert [i.name for i in read_input_file(str(path))] == ["EFG", "Vontobel"]


def test_read_input_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_input_file(str(tmp_path / "missing.csv"))

    bad = tmp_path / "companies.json"
    bad.write_text("[]")
    with pytest.raises(ValueError, match="Unsupported"):
        read_input_file(str(bad))

    empty = tmp_path / "empty.txt"
    empty.write_text("\n , \n")
    with pytest.raises(ValueError, match="No company names"):
        read_input_file(str(empty))


def test_first_seen_casing_and_order_preserved():
    identifiers = build_identifiers(["Acme", "acme", "ACME Inc"])
    assert [i.name for i in identifiers] == ["Acme", "ACME Inc"]
