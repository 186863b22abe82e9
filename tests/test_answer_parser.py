from company_enrichment.answer.parser import (
    clean_value,
    extract_section,
    parse_answer_text,
    record_from_executives,
)
from company_enrichment.models import ExecutiveInfo

STANDARD_ANSWER = """Here is what I found.

=== CONTACT INFO ===
Homepage: https://www.lombardodier.com
Contact Page: https://www.lombardodier.com/contact

Sources were checked on the official site."""


def test_parses_labelled_section():
    record = parse_answer_text(STANDARD_ANSWER, "Lombard Odier")
    assert record.company_name == "Lombard Odier"
    assert record.homepage == "https://www.lombardodier.com"
    assert record.contact_page == "https://www.lombardodier.com/contact"
    assert record.raw_text == STANDARD_ANSWER


def test_not_found_sentinel_means_absent():
    text = "=== CONTACT INFO ===\nHomepage: https://pictet.com\nContact Page: Not found."
    record = parse_answer_text(text, "Pictet")
    assert record.homepage == "https://pictet.com"
    assert record.contact_page is None

    record = parse_answer_text("=== CONTACT INFO ===\nHomepage: NOT FOUND", "Pictet")
    assert record.homepage is None


def test_echoed_placeholder_means_absent():
    text = (
        "=== CONTACT INFO ===\n"
        "Homepage: [company's main website URL]\n"
        "Contact Page: [contact page URL if found]\n"
    )
    record = parse_answer_text(text, "Acme")
    assert record.homepage is None
    assert record.contact_page is None


def test_bracketed_urls_and_markdown_links_are_unwrapped():
    text = (
        "=== CONTACT INFO ===\n"
        "Homepage: [https://www.juliusbaer.com]\n"
        "Contact Page: [Contact us](https://www.juliusbaer.com/en/contact/)\n"
    )
    record = parse_answer_text(text, "Julius Baer")
    assert record.homepage == "https://www.juliusbaer.com"
    assert record.contact_page == "https://www.juliusbaer.com/en/contact/"


def test_bullets_bold_labels_and_citation_markers():
    text = (
        "=== CONTACT INFO ===\n"
        "- **Homepage:** https://www.ubs.com [1]\n"
        "* **Contact Page**: https://www.ubs.com/contact [2][3]\n"
    )
    record = parse_answer_text(text, "UBS")
    assert record.homepage == "https://www.ubs.com"
    assert record.contact_page == "https://www.ubs.com/contact"


def test_labels_outside_contact_section_are_ignored():
    text = (
        "=== CONTACT INFO ===\n"
        "Homepage: Not found\n"
        "=== OTHER ===\n"
        "Homepage: https://wrong.example.com\n"
    )
    record = parse_answer_text(text, "Acme")
    assert record.homepage is None


def test_missing_section_searches_whole_text():
    text = "Homepage: https://www.efg.com\nContact Page: https://www.efg.com/contact"
    record = parse_answer_text(text, "EFG")
    assert record.homepage == "https://www.efg.com"
    assert record.contact_page == "https://www.efg.com/contact"


def test_section_name_is_case_insensitive():
    assert extract_section("=== contact info ===\nHomepage: x\n", "CONTACT INFO") == "\nHomepage: x\n"
    assert extract_section("no headers here", "CONTACT INFO") is None


def test_empty_answer_never_fails():
    record = parse_answer_text("", "Acme")
    assert record.company_name == "Acme"
    assert record.homepage is None
    assert record.contact_page is None


def test_clean_value():
    assert clean_value("  `https://x.com`  ") == "https://x.com"
    assert clean_value("<https://x.com>") == "https://x.com"
    assert clean_value("[1]") is None
    assert clean_value("") is None


def test_record_from_executives():
    info = ExecutiveInfo(ceo="Hubert Keller", cofounders=["Jean Odier", "  ", "Not found"])
    record = record_from_executives(info, raw_text='{"ceo": "Hubert Keller"}')
    assert record.ceo == "Hubert Keller"
    assert record.cofounders == ["Jean Odier"]
    assert record.raw_text == '{"ceo": "Hubert Keller"}'
    assert record.homepage is None


def test_record_from_executives_absent_fields():
    record = record_from_executives(ExecutiveInfo())
    assert record.ceo is None
    assert record.cofounders == []
