from datetime import datetime

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from exambank.dependencies.database import Base


class ExamPaper(Base):
    __tablename__ = "exam_papers"
    id = Column(Integer, primary_key=True)
    paper_id = Column(String(50), unique=True, nullable=False, index=True)
    paper_name = Column(String(255), nullable=True)
    status = Column(String(20), default="inactive", nullable=False)  # active, inactive
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    subjects = relationship(
        "ExamPaperSubject",
        back_populates="exam_paper",
        cascade="all, delete-orphan",
        order_by="ExamPaperSubject.id",
    )


class ExamPaperSubject(Base):
    __tablename__ = "exam_paper_subjects"
    id = Column(Integer, primary_key=True)
    exam_paper_id = Column(Integer, ForeignKey("exam_papers.id", ondelete="CASCADE"), nullable=False, index=True)
    subject_id = Column(String(64), nullable=False)
    subject_name = Column(String(255), nullable=False)
    number_of_questions = Column(Integer, default=0, nullable=False)

    exam_paper = relationship("ExamPaper", back_populates="subjects")


class Question(Base):
    __tablename__ = "questions"
    id = Column(Integer, primary_key=True)
    # Not a foreign key: stored codes drift from exam_papers.paper_id between upload sessions
    paper_id = Column(String(50), nullable=False, index=True)
    subject_id = Column(String(64), nullable=False, index=True)
    subject_name = Column(String(255), nullable=False)
    question_text = Column(Text, nullable=False)
    option_a = Column(Text, nullable=False)
    option_b = Column(Text, nullable=False)
    option_c = Column(Text, nullable=False)
    option_d = Column(Text, nullable=False)
    correct_option = Column(String(1), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (Index("ix_questions_paper_subject", "paper_id", "subject_id"),)
