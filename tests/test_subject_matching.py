import pytest

from exambank.core.subject_matching import (
    MatchReason,
    SubjectMatchingConfig,
    SubjectNameMatcher,
    compare_subject_names,
)

NAMES = [
    "Computer Fundamental",
    "Computer Fundamentle",
    "computer   fundamentals",
    "MS Excel",
    "MS Word",
    "Microsoft Excel",
    "Internet & Email",
    "Computer Networks",
    "Computer Basics",
    "Mathematics",
    "Maths",
    "History",
]


@pytest.fixture
def matcher() -> SubjectNameMatcher:
    return SubjectNameMatcher()


@pytest.mark.parametrize("left", NAMES)
@pytest.mark.parametrize("right", NAMES)
def test_matches_is_symmetric(matcher, left, right):
    assert matcher.matches(left, right) == matcher.matches(right, left)


@pytest.mark.parametrize("name", NAMES)
def test_matches_is_reflexive(matcher, name):
    assert matcher.matches(name, name)


def test_excel_and_word_conflict_despite_shared_token(matcher):
    explanation = matcher.explain("MS Excel", "MS Word")
    assert not explanation.matched
    assert explanation.reason == MatchReason.CATEGORY_CONFLICT
    assert (explanation.left_category, explanation.right_category) == ("excel", "word")


def test_typo_table_makes_names_equal(matcher):
    explanation = matcher.explain("Computer Fundamentle", "computer  FUNDAMENTAL")
    assert explanation.matched
    assert explanation.reason == MatchReason.EXACT


def test_synonyms_apply_per_token(matcher):
    assert matcher.normalize("Basic Mathematics") == "basic math"
    assert matcher.matches("Maths", "Mathematics")


def test_containment(matcher):
    explanation = matcher.explain("Excel", "Microsoft Excel Advanced")
    assert explanation.matched
    assert explanation.reason == MatchReason.CONTAINMENT


def test_word_overlap_without_categories():
    matcher = SubjectNameMatcher(SubjectMatchingConfig())
    explanation = matcher.explain("Computer Basics", "Computer Networks")
    assert explanation.matched
    assert explanation.reason == MatchReason.WORD_OVERLAP


def test_default_categories_veto_overlap_of_different_buckets(matcher):
    # "basic" puts the name in the fundamentals bucket, "networks" only in computer
    assert not matcher.matches("Computer Basics", "Computer Networks")
    assert matcher.matches("Computer Basics", "Computer Fundamental")


def test_short_tokens_do_not_count_as_overlap():
    matcher = SubjectNameMatcher(SubjectMatchingConfig())
    explanation = matcher.explain("IT of Data", "IT of Graphics")
    assert not explanation.matched
    assert explanation.reason == MatchReason.NO_MATCH


@pytest.mark.parametrize("left, right", [("", "Excel"), ("Excel", None), (None, None)])
def test_empty_names_never_match(matcher, left, right):
    explanation = matcher.explain(left, right)
    assert not explanation.matched
    assert explanation.reason == MatchReason.EMPTY


def test_unrelated_subjects_do_not_match(matcher):
    assert not matcher.matches("History", "Mathematics")


def test_compare_subject_names_uses_default_tables():
    assert compare_subject_names("Computer Fundamentals", "Computer Fundamental")
    assert not compare_subject_names("MS Excel", "MS Word")
