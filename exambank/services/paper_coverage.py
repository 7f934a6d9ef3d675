"""Per-subject question availability for an exam paper."""

import logging

from exambank.schemas.question import PaperCoverageResponse, SubjectCoverage
from exambank.services.question_resolution import Found, QuestionResolver, ResolutionQuery
from exambank.services.question_store import ExamPaperSource, QuestionStore

logger = logging.getLogger(__name__)


async def summarize_paper_coverage(
    store: QuestionStore, exam_papers: ExamPaperSource, paper_identifier: str
) -> PaperCoverageResponse | None:
    """
    Resolve every subject of an exam paper and report whether it can be served.

    A subject is ready when it resolves to at least the expected number of
    questions (or to any questions when no count is configured). The paper is
    ready when it has subjects and all of them are ready.

    Args:
        store: Question store to resolve against
        exam_papers: Exam paper lookup
        paper_identifier: Paper code or store id

    Returns:
        PaperCoverageResponse, or None if the paper does not exist
    """
    paper = await exam_papers.find_paper(paper_identifier)
    if paper is None:
        return None

    resolver = QuestionResolver(store, exam_papers, sample_size=0)
    subjects = []
    for subject in paper.subjects:
        result = await resolver.resolve(
            ResolutionQuery(
                paper_id=paper.paper_id,
                subject_identifier=subject.subject_id,
                subject_name=subject.subject_name,
            )
        )
        if isinstance(result, Found):
            resolved, strategy = len(result.questions), result.strategy
        else:
            resolved, strategy = 0, None

        expected = subject.number_of_questions
        ready = resolved >= expected if expected > 0 else resolved > 0
        subjects.append(
            SubjectCoverage(
                subject_id=subject.subject_id,
                subject_name=subject.subject_name,
                expected_questions=expected,
                resolved_questions=resolved,
                strategy=strategy,
                ready=ready,
            )
        )

    paper_ready = bool(subjects) and all(subject.ready for subject in subjects)
    logger.info(f"Coverage for paper {paper.paper_id}: {sum(s.ready for s in subjects)}/{len(subjects)} subjects ready")
    return PaperCoverageResponse(
        paper_id=paper.paper_id, paper_name=paper.paper_name, ready=paper_ready, subjects=subjects
    )
