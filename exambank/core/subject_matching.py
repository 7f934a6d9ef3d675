"""Subject name comparison with synonym normalization and category conflict detection."""
import logging
import re
from dataclasses import dataclass, field
from enum import Enum

from exambank.config import SubjectMatchingSettings, subject_matching_settings

logger = logging.getLogger(__name__)

WHITESPACE_PATTERN = re.compile(r"\s+")


class MatchReason(str, Enum):
    EMPTY = "empty"
    EXACT = "exact"
    CATEGORY_CONFLICT = "category_conflict"
    CONTAINMENT = "containment"
    WORD_OVERLAP = "word_overlap"
    NO_MATCH = "no_match"


@dataclass(frozen=True)
class SubjectMatchingConfig:
    """Synonym and category tables driving subject name comparison."""

    synonyms: dict[str, str] = field(default_factory=dict)
    categories: dict[str, tuple[str, ...]] = field(default_factory=dict)
    min_token_length: int = 3
    overlap_ratio: float = 0.5

    @classmethod
    def from_settings(cls, config: SubjectMatchingSettings | None = None) -> "SubjectMatchingConfig":
        config = config or subject_matching_settings
        return cls(
            synonyms={key.lower(): value.lower() for key, value in config.synonyms.items()},
            categories={
                name: tuple(alias.lower() for alias in aliases) for name, aliases in config.categories.items()
            },
            min_token_length=config.min_token_length,
            overlap_ratio=config.overlap_ratio,
        )


@dataclass(frozen=True)
class MatchExplanation:
    matched: bool
    reason: MatchReason
    left: str
    right: str
    left_category: str | None = None
    right_category: str | None = None


class SubjectNameMatcher:
    """
    Decide whether two free-text subject names denote the same subject.

    Steps, first decisive one wins:
    1. equality after lowercasing, whitespace collapsing and synonym rewrites
    2. category conflict guard (e.g. "MS Excel" vs "MS Word" never match)
    3. containment of one normalized name in the other
    4. overlap of significant words covering at least half of either side
    """

    def __init__(self, config: SubjectMatchingConfig | None = None):
        self.config = config or SubjectMatchingConfig.from_settings()

    def normalize(self, name: str) -> str:
        collapsed = WHITESPACE_PATTERN.sub(" ", name.lower()).strip()
        if not collapsed:
            return ""
        return " ".join(self.config.synonyms.get(token, token) for token in collapsed.split(" "))

    def classify(self, normalized_name: str) -> str | None:
        """Return the first category whose aliases occur in the name."""
        for category, aliases in self.config.categories.items():
            if any(alias in normalized_name for alias in aliases):
                return category
        return None

    def tokens(self, normalized_name: str) -> set[str]:
        return {token for token in normalized_name.split(" ") if len(token) >= self.config.min_token_length}

    def explain(self, a: str | None, b: str | None) -> MatchExplanation:
        if not a or not b:
            return MatchExplanation(False, MatchReason.EMPTY, a or "", b or "")

        left = self.normalize(a)
        right = self.normalize(b)
        if left == right:
            return MatchExplanation(True, MatchReason.EXACT, left, right)
        if not left or not right:
            return MatchExplanation(False, MatchReason.EMPTY, left, right)

        left_category = self.classify(left)
        right_category = self.classify(right)
        if left_category and right_category and left_category != right_category:
            return MatchExplanation(
                False, MatchReason.CATEGORY_CONFLICT, left, right, left_category, right_category
            )

        if left in right or right in left:
            return MatchExplanation(True, MatchReason.CONTAINMENT, left, right, left_category, right_category)

        left_tokens = self.tokens(left)
        right_tokens = self.tokens(right)
        common = left_tokens & right_tokens
        if common and (
            len(common) >= len(left_tokens) * self.config.overlap_ratio
            or len(common) >= len(right_tokens) * self.config.overlap_ratio
        ):
            return MatchExplanation(True, MatchReason.WORD_OVERLAP, left, right, left_category, right_category)

        return MatchExplanation(False, MatchReason.NO_MATCH, left, right, left_category, right_category)

    def matches(self, a: str | None, b: str | None) -> bool:
        explanation = self.explain(a, b)
        if explanation.reason == MatchReason.CATEGORY_CONFLICT:
            logger.debug(
                f"Subject mismatch: '{a}' ({explanation.left_category}) vs '{b}' ({explanation.right_category})"
            )
        return explanation.matched


_default_matcher: SubjectNameMatcher | None = None


def get_subject_matcher() -> SubjectNameMatcher:
    """Get the matcher configured from SubjectMatchingSettings."""
    global _default_matcher
    if _default_matcher is None:
        _default_matcher = SubjectNameMatcher()
    return _default_matcher


def compare_subject_names(a: str | None, b: str | None) -> bool:
    """Compare two subject names with the default matcher."""
    return get_subject_matcher().matches(a, b)
