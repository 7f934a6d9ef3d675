import pytest

from exambank.schemas.exam import ExamPaperRecord, SubjectSpec
from exambank.schemas.question import QuestionInput, QuestionRecord
from exambank.services.question_store import InMemoryQuestionStore


def make_question(
    paper_id: str = "EXM2024",
    subject_id: str = "s1",
    subject_name: str = "Computer Fundamental",
    question_text: str = "What does CPU stand for?",
    **fields: str,
) -> QuestionRecord:
    values = {
        "option_a": "Central Processing Unit",
        "option_b": "Computer Personal Unit",
        "option_c": "Central Peripheral Unit",
        "option_d": "Control Processing Unit",
        "correct_option": "A",
    }
    values.update(fields)
    return QuestionRecord(
        paper_id=paper_id,
        subject_id=subject_id,
        subject_name=subject_name,
        question_text=question_text,
        **values,
    )


def make_input(question_text: str = "What is RAM?", **fields: str) -> QuestionInput:
    values = {
        "option_a": "Random Access Memory",
        "option_b": "Read Access Memory",
        "option_c": "Rapid Access Memory",
        "option_d": "Run Access Memory",
        "correct_option": "A",
    }
    values.update(fields)
    return QuestionInput(question_text=question_text, **values)


@pytest.fixture
def exam_paper() -> ExamPaperRecord:
    return ExamPaperRecord(
        paper_id="EXM2024",
        paper_name="Computer Proficiency 2024",
        status="active",
        subjects=[
            SubjectSpec(subject_id="s1", subject_name="Computer Fundamental", number_of_questions=10),
            SubjectSpec(subject_id="s2", subject_name="MS Excel", number_of_questions=5),
        ],
    )


@pytest.fixture
def store(exam_paper: ExamPaperRecord) -> InMemoryQuestionStore:
    return InMemoryQuestionStore(exam_papers=[exam_paper])
