from pydantic import BaseModel, Field


class SubjectSpec(BaseModel):
    """Subject examined by a paper, as configured at exam setup."""

    id: int | None = None
    subject_id: str
    subject_name: str
    number_of_questions: int = 0

    class Config:
        from_attributes = True


class ExamPaperRecord(BaseModel):
    """Exam paper with the subjects it examines."""

    id: int | None = None
    paper_id: str
    paper_name: str | None = None
    status: str = "inactive"
    subjects: list[SubjectSpec] = Field(default_factory=list)

    class Config:
        from_attributes = True

    def find_subject(self, identifier: str) -> SubjectSpec | None:
        """Find the subject by subject id, store id or case-insensitive name."""
        lowered = identifier.strip().lower()
        for subject in self.subjects:
            if subject.subject_id == identifier or (subject.id is not None and str(subject.id) == identifier):
                return subject
            if subject.subject_name and subject.subject_name.strip().lower() == lowered:
                return subject
        return None
