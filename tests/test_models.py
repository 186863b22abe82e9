from company_enrichment.models import (
    EntryStatus,
    ExecutiveInfo,
    Identifier,
    PartialRecord,
    Phase,
    ProgressState,
    ResultEntry,
    error_entries,
    error_identifiers,
)


def test_blank_scalars_become_none():
    record = PartialRecord(homepage="   ", phone="", ceo=" Jane ")
    assert record.homepage is None
    assert record.phone is None
    assert record.ceo == "Jane"
    assert record.is_empty() is False
    assert PartialRecord().is_empty()


def test_merge_later_non_empty_wins():
    earlier = PartialRecord(homepage="http://directory.example", phone="+41 1")
    later = PartialRecord(homepage="https://search.example", phone=None)
    merged = earlier.merge(later)
    assert merged.homepage == "https://search.example"
    assert merged.phone == "+41 1"


def test_merge_empty_never_clobbers():
    earlier = PartialRecord(country="Switzerland", cofounders=["A"])
    merged = earlier.merge(PartialRecord(country="", cofounders=[]))
    assert merged.country == "Switzerland"
    assert merged.cofounders == ["A"]


def test_merge_lists_and_raw_text():
    earlier = PartialRecord(cofounders=["A"], source_urls=["u1", "u2"], raw_text="first")
    later = PartialRecord(cofounders=["B", "C"], source_urls=["u2", "u3"], raw_text="second")
    merged = earlier.merge(later)
    assert merged.cofounders == ["B", "C"]
    assert merged.source_urls == ["u1", "u2", "u3"]
    assert merged.raw_text == "first\n\nsecond"
    # inputs are untouched
    assert earlier.source_urls == ["u1", "u2"]


def test_placeholder_entry():
    ident = Identifier(index=0, name="Pictet", source_url="https://dir/profile/p")
    entry = ResultEntry.placeholder(ident)
    assert entry.status == EntryStatus.OK
    assert entry.record.company_name == "Pictet"
    assert entry.record.source_urls == ["https://dir/profile/p"]


def test_percent_is_floored():
    assert ProgressState(completed=2, total=3).percent == 66
    assert ProgressState(completed=199, total=200).percent == 99
    assert ProgressState(completed=3, total=3, phase=Phase.DONE).percent == 100
    assert ProgressState(completed=3, total=3, phase=Phase.RUNNING).percent == 99
    assert ProgressState(total=0, phase=Phase.DONE).percent == 100
    assert ProgressState(total=0, phase=Phase.FAILED).percent == 0


def test_percent_is_serialized():
    assert ProgressState(completed=1, total=4).model_dump()["percent"] == 25


def test_executive_info_drops_blank_names():
    info = ExecutiveInfo.model_validate({"ceo": "X", "cofounders": ["", "Y", None]})
    assert info.cofounders == ["Y"]
    assert ExecutiveInfo.model_validate({}).cofounders is None


def test_error_subset_is_renumbered():
    entries = [
        ResultEntry(identifier=Identifier(index=0, name="A")),
        ResultEntry(identifier=Identifier(index=1, name="B"), status=EntryStatus.ERROR, error="x"),
        ResultEntry(identifier=Identifier(index=2, name="C"), status=EntryStatus.ERROR, error="y"),
    ]
    assert [e.identifier.name for e in error_entries(entries)] == ["B", "C"]
    retry = error_identifiers(entries)
    assert [(i.index, i.name) for i in retry] == [(0, "B"), (1, "C")]
