"""Exam paper identifier normalization utilities."""
import re
from dataclasses import dataclass
from enum import Enum

# Leading letters plus any separators after them ("PAPER-", "EXM", "P")
PAPER_PREFIX_PATTERN = re.compile(r"^[A-Za-z]+[\W_]*")

# Older upload flows stored papers as "P" + the last four characters of the code
SHORT_CODE_PREFIX = "P"
SHORT_CODE_LENGTH = 4


class PaperIdMatchKind(str, Enum):
    EXACT = "exact"
    SUFFIX = "suffix"
    SHORT_CODE = "short_code"


def strip_paper_prefix(paper_id: str) -> str:
    """
    Strip the alphabetic prefix (and the separators following it) from a paper code.

    Examples:
        >>> strip_paper_prefix("PAPER-2024-00417")
        '2024-00417'
        >>> strip_paper_prefix("EXM2024")
        '2024'
        >>> strip_paper_prefix("2024-00417")
        '2024-00417'
    """
    return PAPER_PREFIX_PATTERN.sub("", paper_id.strip(), count=1)


def build_short_code(paper_id: str) -> str:
    """Build the truncated "P<last 4>" code for a paper identifier."""
    return f"{SHORT_CODE_PREFIX}{paper_id.strip()[-SHORT_CODE_LENGTH:]}"


@dataclass(frozen=True)
class PaperIdCondition:
    """One form under which a paper may be stored."""

    kind: PaperIdMatchKind
    value: str

    def matches(self, stored_paper_id: str | None) -> bool:
        if not stored_paper_id:
            return False
        if self.kind == PaperIdMatchKind.SUFFIX:
            return strip_paper_prefix(stored_paper_id) == self.value
        return stored_paper_id == self.value

    def describe(self) -> str:
        return f"{self.kind.value}:{self.value}"


def normalize_paper_id(paper_id: str | None) -> list[PaperIdCondition]:
    """
    Expand a paper identifier into the ordered conditions it may be stored under.

    Order defines precedence: exact code, prefix-stripped suffix, then the
    synthesized short code. Duplicates are dropped.

    Args:
        paper_id: Paper identifier as supplied by the caller

    Returns:
        Ordered list of PaperIdCondition

    Raises:
        ValueError: If the identifier is missing or blank
    """
    if not paper_id or not paper_id.strip():
        raise ValueError("Paper ID is required")

    code = paper_id.strip()
    conditions = [PaperIdCondition(PaperIdMatchKind.EXACT, code)]

    suffix = strip_paper_prefix(code)
    if suffix:
        conditions.append(PaperIdCondition(PaperIdMatchKind.SUFFIX, suffix))

    short_code = build_short_code(code)
    if short_code != code:
        conditions.append(PaperIdCondition(PaperIdMatchKind.SHORT_CODE, short_code))

    return _dedupe(conditions)


def _dedupe(conditions: list[PaperIdCondition]) -> list[PaperIdCondition]:
    seen: set[PaperIdCondition] = set()
    unique: list[PaperIdCondition] = []
    for condition in conditions:
        if condition not in seen:
            seen.add(condition)
            unique.append(condition)
    return unique


@dataclass(frozen=True)
class PaperAliasSet:
    """Union of the stored forms of one logical exam paper."""

    conditions: tuple[PaperIdCondition, ...]

    @classmethod
    def from_identifiers(cls, *identifiers: str | None) -> "PaperAliasSet":
        """
        Build an alias set from several identifiers of the same paper.

        Blank identifiers are skipped; at least one usable identifier is required.
        """
        conditions: list[PaperIdCondition] = []
        for identifier in identifiers:
            if identifier and identifier.strip():
                conditions.extend(normalize_paper_id(identifier))
        if not conditions:
            raise ValueError("Paper ID is required")
        return cls(tuple(_dedupe(conditions)))

    def matches(self, stored_paper_id: str | None) -> bool:
        return any(condition.matches(stored_paper_id) for condition in self.conditions)

    @property
    def exact_values(self) -> list[str]:
        """Values that must equal the stored code (exact and short-code forms)."""
        return [c.value for c in self.conditions if c.kind != PaperIdMatchKind.SUFFIX]

    @property
    def suffixes(self) -> list[str]:
        return [c.value for c in self.conditions if c.kind == PaperIdMatchKind.SUFFIX]

    def describe(self) -> list[str]:
        return [condition.describe() for condition in self.conditions]

    def each(self) -> list["PaperAliasSet"]:
        """Split into single-condition alias sets, in precedence order."""
        return [PaperAliasSet((condition,)) for condition in self.conditions]
