"""Resolve the question bank of a paper subject through ordered matching strategies."""

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from exambank.config import settings
from exambank.core.paper_ids import PaperAliasSet
from exambank.core.subject_matching import SubjectNameMatcher, get_subject_matcher
from exambank.core.text import decode_text
from exambank.schemas.exam import ExamPaperRecord, SubjectSpec
from exambank.schemas.question import DiagnosticInfo, QuestionRecord, SubjectComparison
from exambank.services.errors import InvalidInputError
from exambank.services.question_store import ExamPaperSource, QuestionFilter, QuestionStore, parse_store_id
from exambank.services.record_normalizer import normalize_records

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolutionQuery:
    paper_id: str
    subject_identifier: str
    exact_match_requested: bool = False
    # Explicit target name; otherwise taken from the paper's subject list or the identifier
    subject_name: str | None = None


@dataclass(frozen=True)
class ResolutionContext:
    """Everything a strategy needs, computed once per resolution."""

    query: ResolutionQuery
    subject_identifier: str
    paper_aliases: PaperAliasSet
    matcher: SubjectNameMatcher
    exam_paper: ExamPaperRecord | None = None
    target_subject: SubjectSpec | None = None
    target_subject_name: str | None = None

    @property
    def paper_filter(self) -> QuestionFilter:
        return QuestionFilter(paper_aliases=self.paper_aliases)

    @property
    def paper_alias_order(self) -> list[PaperAliasSet]:
        """Each stored form of the paper on its own; strategies stop at the first that yields records."""
        return self.paper_aliases.each()

    @property
    def subject_ids(self) -> list[str]:
        """Requested identifier first, then the id of the paper subject it names."""
        ids = [self.subject_identifier]
        if self.target_subject is not None and self.target_subject.subject_id not in ids:
            ids.append(self.target_subject.subject_id)
        return ids


StrategyFn = Callable[[QuestionStore, ResolutionContext], Awaitable[list[QuestionRecord] | None]]


@dataclass(frozen=True)
class ResolutionStrategy:
    name: str
    run: StrategyFn
    # Fuzzy strategies are skipped when the caller asks for an exact match
    fuzzy: bool = False


@dataclass(frozen=True)
class Found:
    questions: list[QuestionRecord]
    strategy: str


@dataclass(frozen=True)
class NotFound:
    diagnostic: DiagnosticInfo


ResolutionResult = Found | NotFound


async def match_exact_subject_id(store: QuestionStore, context: ResolutionContext) -> list[QuestionRecord] | None:
    """Questions with the requested subject id under the first paper alias that holds any."""
    for alias in context.paper_alias_order:
        for subject_id in context.subject_ids:
            questions = await store.find(QuestionFilter(paper_aliases=alias, subject_id=subject_id))
            if questions:
                return questions
    return None


async def match_subject_name(store: QuestionStore, context: ResolutionContext) -> list[QuestionRecord] | None:
    """Questions with exactly the target subject name under the first paper alias that holds any."""
    if not context.target_subject_name:
        return None
    for alias in context.paper_alias_order:
        questions = await store.find(QuestionFilter(paper_aliases=alias, subject_name=context.target_subject_name))
        if questions:
            return questions
    return None


async def match_fuzzy_subject_name(store: QuestionStore, context: ResolutionContext) -> list[QuestionRecord] | None:
    """
    Questions whose subject name fuzzy-matches the target, under the first paper
    alias holding any such question.

    Only decisive when every candidate carries the same subject name; candidates
    spanning several subjects are left to best-available selection so unrelated
    subjects never end up in one exam.
    """
    if not context.target_subject_name:
        return None

    for alias in context.paper_alias_order:
        records = await store.find(QuestionFilter(paper_aliases=alias))
        candidates = [
            record for record in records if context.matcher.matches(record.subject_name, context.target_subject_name)
        ]
        if not candidates:
            continue

        subject_names = {record.subject_name for record in candidates}
        if len(subject_names) > 1:
            logger.info(
                f"Fuzzy match for '{context.target_subject_name}' spans {len(subject_names)} subjects, "
                "deferring to best available subject"
            )
            return None
        return candidates
    return None


async def match_best_available_subject(
    store: QuestionStore, context: ResolutionContext
) -> list[QuestionRecord] | None:
    """
    Questions of the single best matching subject under the first paper alias
    holding a matching subject.

    The subject with the most questions wins; ties go to the lexicographically
    smallest name so the result never depends on store ordering.
    """
    if not context.target_subject_name:
        return None

    for alias in context.paper_alias_order:
        available = await store.distinct("subject_name", QuestionFilter(paper_aliases=alias))
        scored: list[tuple[int, str]] = []
        for name in sorted(available):
            if context.matcher.matches(name, context.target_subject_name):
                count = await store.count(QuestionFilter(paper_aliases=alias, subject_name=name))
                scored.append((count, name))
        if not scored:
            continue

        best_count, best_name = min(scored, key=lambda item: (-item[0], item[1]))
        logger.info(
            f"Best available subject for '{context.target_subject_name}': '{best_name}' ({best_count} questions)"
        )
        return await store.find(QuestionFilter(paper_aliases=alias, subject_name=best_name))
    return None


DEFAULT_STRATEGIES: tuple[ResolutionStrategy, ...] = (
    ResolutionStrategy("exact_subject_id", match_exact_subject_id),
    ResolutionStrategy("subject_name", match_subject_name),
    ResolutionStrategy("fuzzy_subject_name", match_fuzzy_subject_name, fuzzy=True),
    ResolutionStrategy("best_available_subject", match_best_available_subject, fuzzy=True),
)


class QuestionResolver:
    """
    Run matching strategies in order until one returns questions.

    Results of different strategies are never merged. Store failures propagate;
    a strategy rejecting malformed input with ValueError is skipped.
    """

    def __init__(
        self,
        store: QuestionStore,
        exam_papers: ExamPaperSource | None = None,
        matcher: SubjectNameMatcher | None = None,
        strategies: Sequence[ResolutionStrategy] = DEFAULT_STRATEGIES,
        sample_size: int | None = None,
    ):
        self.store = store
        self.exam_papers = exam_papers
        self.matcher = matcher or get_subject_matcher()
        self.strategies = tuple(strategies)
        self.sample_size = settings.diagnostic_sample_size if sample_size is None else sample_size

    async def build_context(self, query: ResolutionQuery) -> ResolutionContext:
        paper_id = (query.paper_id or "").strip()
        if not paper_id:
            raise InvalidInputError("Paper ID is required")
        subject_identifier = decode_text(query.subject_identifier).strip()
        if not subject_identifier:
            raise InvalidInputError("Subject ID is required")

        exam_paper = await self.exam_papers.find_paper(paper_id) if self.exam_papers else None
        if exam_paper is None:
            logger.info(f"Exam paper {paper_id} not found, resolving against stored questions only")

        paper_aliases = PaperAliasSet.from_identifiers(paper_id, exam_paper.paper_id if exam_paper else None)
        target_subject = exam_paper.find_subject(subject_identifier) if exam_paper else None

        explicit_name = decode_text(query.subject_name).strip() if query.subject_name else ""
        if explicit_name:
            target_subject_name = explicit_name
        elif target_subject is not None:
            target_subject_name = target_subject.subject_name
        else:
            # Callers also pass free-text subject names as the identifier
            target_subject_name = subject_identifier

        return ResolutionContext(
            query=query,
            subject_identifier=subject_identifier,
            paper_aliases=paper_aliases,
            matcher=self.matcher,
            exam_paper=exam_paper,
            target_subject=target_subject,
            target_subject_name=target_subject_name,
        )

    async def resolve(self, query: ResolutionQuery) -> ResolutionResult:
        """
        Resolve questions for a paper subject.

        Args:
            query: Paper id, subject identifier and exact-match flag

        Returns:
            Found with normalized questions, or NotFound with a diagnostic

        Raises:
            InvalidInputError: If paper id or subject identifier is missing
            StoreUnavailableError: If the question store cannot be reached
        """
        context = await self.build_context(query)
        logger.info(
            "Resolving questions",
            extra={
                "paper_id": query.paper_id,
                "subject_identifier": context.subject_identifier,
                "target_subject_name": context.target_subject_name,
                "exact_match": query.exact_match_requested,
            },
        )

        attempted: list[str] = []
        for strategy in self.strategies:
            if strategy.fuzzy and query.exact_match_requested:
                logger.debug(f"Skipping fuzzy strategy {strategy.name}: exact match requested")
                continue

            attempted.append(strategy.name)
            try:
                questions = await strategy.run(self.store, context)
            except ValueError as e:
                logger.warning(f"Strategy {strategy.name} skipped: {e}")
                continue

            if questions:
                logger.info(f"Strategy {strategy.name} found {len(questions)} questions")
                return Found(questions=normalize_records(questions), strategy=strategy.name)
            logger.debug(f"Strategy {strategy.name} found no questions")

        diagnostic = await self.build_diagnostic(context, attempted)
        logger.warning(
            "No questions found",
            extra={
                "paper_id": query.paper_id,
                "subject_identifier": context.subject_identifier,
                "paper_questions": diagnostic.paper_questions,
                "available_subjects": len(diagnostic.available_subject_names),
            },
        )
        return NotFound(diagnostic=diagnostic)

    async def build_diagnostic(self, context: ResolutionContext, attempted: list[str]) -> DiagnosticInfo:
        paper_filter = context.paper_filter
        total_questions = await self.store.count(QuestionFilter())
        paper_questions = await self.store.count(paper_filter)
        available = sorted(await self.store.distinct("subject_name", paper_filter))

        comparisons = []
        for name in available:
            explanation = self.matcher.explain(name, context.target_subject_name)
            comparisons.append(
                SubjectComparison(
                    subject_name=name,
                    matched=explanation.matched,
                    reason=explanation.reason.value,
                    question_count=await self.store.count(
                        QuestionFilter(paper_aliases=context.paper_aliases, subject_name=name)
                    ),
                )
            )

        samples: list[QuestionRecord] = []
        if self.sample_size > 0:
            samples = await self.store.find(paper_filter, limit=self.sample_size)
            if not samples:
                samples = await self.store.find(QuestionFilter(), limit=self.sample_size)

        return DiagnosticInfo(
            total_questions=total_questions,
            paper_questions=paper_questions,
            available_subject_names=available,
            sample_questions=samples,
            exam_paper_found=context.exam_paper is not None,
            target_subject_name=context.target_subject_name,
            paper_aliases=context.paper_aliases.describe(),
            attempted_strategies=attempted,
            subject_comparisons=comparisons,
        )


async def resolve_questions(
    store: QuestionStore,
    paper_id: str,
    subject_identifier: str,
    exact_match_requested: bool = False,
    exam_papers: ExamPaperSource | None = None,
    subject_name: str | None = None,
) -> ResolutionResult:
    """Resolve questions for (paper_id, subject_identifier) with the default strategies."""
    resolver = QuestionResolver(store, exam_papers)
    return await resolver.resolve(
        ResolutionQuery(
            paper_id=paper_id,
            subject_identifier=subject_identifier,
            exact_match_requested=exact_match_requested,
            subject_name=subject_name,
        )
    )


async def find_questions_by_ids(store: QuestionStore, question_ids: Sequence[str | int]) -> list[QuestionRecord]:
    """
    Fetch questions by store id, normalized for display.

    Ids that are not valid store ids are ignored.

    Raises:
        InvalidInputError: If no question ids are given
    """
    if not question_ids:
        raise InvalidInputError("Question IDs are required")

    parsed = (parse_store_id(question_id) for question_id in question_ids)
    valid_ids = tuple(dict.fromkeys(store_id for store_id in parsed if store_id is not None))
    if len(valid_ids) != len(question_ids):
        logger.info(f"Ignoring {len(question_ids) - len(valid_ids)} invalid or duplicate question ids")
    if not valid_ids:
        return []
    return normalize_records(await store.find(QuestionFilter(question_ids=valid_ids)))
