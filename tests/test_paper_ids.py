import pytest

from exambank.core.paper_ids import (
    PaperAliasSet,
    PaperIdMatchKind,
    build_short_code,
    normalize_paper_id,
    strip_paper_prefix,
)


def test_strip_paper_prefix():
    assert strip_paper_prefix("PAPER-2024-00417") == "2024-00417"
    assert strip_paper_prefix("EXM2024") == "2024"
    assert strip_paper_prefix("2024-00417") == "2024-00417"
    assert strip_paper_prefix("P_2024") == "2024"


def test_build_short_code():
    assert build_short_code("EXM2024") == "P2024"
    assert build_short_code("PAPER-2024-00417") == "P0417"


def test_normalize_paper_id_orders_conditions():
    conditions = normalize_paper_id("EXM2024")
    assert [(c.kind, c.value) for c in conditions] == [
        (PaperIdMatchKind.EXACT, "EXM2024"),
        (PaperIdMatchKind.SUFFIX, "2024"),
        (PaperIdMatchKind.SHORT_CODE, "P2024"),
    ]


def test_normalize_paper_id_drops_duplicate_short_code():
    conditions = normalize_paper_id("P2024")
    assert [c.kind for c in conditions] == [PaperIdMatchKind.EXACT, PaperIdMatchKind.SUFFIX]


def test_normalize_paper_id_numeric_only():
    conditions = normalize_paper_id("2024")
    # Suffix equals the code itself, so only the exact and short-code forms differ
    assert conditions[0].value == "2024"
    assert PaperIdMatchKind.SHORT_CODE in [c.kind for c in conditions]


@pytest.mark.parametrize("value", [None, "", "   "])
def test_normalize_paper_id_rejects_blank(value):
    with pytest.raises(ValueError):
        normalize_paper_id(value)


def test_alias_set_matches_stored_forms():
    aliases = PaperAliasSet.from_identifiers("EXM2024")
    assert aliases.matches("EXM2024")
    assert aliases.matches("P2024")
    assert aliases.matches("PAPER-2024")
    assert not aliases.matches("EXM2025")
    assert not aliases.matches("")
    assert not aliases.matches(None)


def test_alias_set_union_of_identifiers():
    aliases = PaperAliasSet.from_identifiers("17", "EXM2024", None)
    assert aliases.matches("17")
    assert aliases.matches("P2024")
    assert "exact:EXM2024" in aliases.describe()


def test_alias_set_requires_an_identifier():
    with pytest.raises(ValueError):
        PaperAliasSet.from_identifiers(None, " ")


def test_alias_set_splits_exact_and_suffix_values():
    aliases = PaperAliasSet.from_identifiers("EXM2024")
    assert aliases.exact_values == ["EXM2024", "P2024"]
    assert aliases.suffixes == ["2024"]


def test_alias_set_each_keeps_precedence_order():
    aliases = PaperAliasSet.from_identifiers("EXM2024")
    single = aliases.each()
    assert [alias.describe() for alias in single] == [["exact:EXM2024"], ["suffix:2024"], ["short_code:P2024"]]
    assert single[0].matches("EXM2024")
    assert not single[0].matches("P2024")
