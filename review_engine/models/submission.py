# review_engine/models/submission.py
from sqlalchemy import (
    Column,
    Integer,
    String,
    Text,
    DateTime,
    Numeric,
    ForeignKey,
    JSON,
    Enum,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from review_engine.db.base import Base
from review_engine.models.enums import ScoringMethod, enum_values


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True, index=True)

    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    contest_id = Column(Integer, ForeignKey("contests.id"), nullable=False, index=True)
    submitted_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    # always the sum of answers.score
    total_score = Column(Numeric(10, 2), nullable=False, default=0)
    # bumped by the services on every answer mutation; also guards the UPDATE
    version = Column(Integer, nullable=False, default=1)

    general_feedback = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    student = relationship("User")
    contest = relationship("Contest")
    answers = relationship(
        "Answer",
        back_populates="submission",
        order_by="Answer.position",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {
        "version_id_col": version,
        "version_id_generator": False,
    }


class Answer(Base):
    __tablename__ = "answers"
    __table_args__ = (
        UniqueConstraint("submission_id", "question_id", name="uq_answer_submission_question"),
    )

    id = Column(Integer, primary_key=True, index=True)
    submission_id = Column(Integer, ForeignKey("submissions.id"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    raw_text = Column(Text, nullable=False, default="")

    score = Column(Numeric(8, 2), nullable=False, default=0)
    scoring_method = Column(
        Enum(ScoringMethod, name="scoring_method", values_callable=enum_values),
        nullable=False,
        index=True,
    )
    # found / missing / match_fraction / match_details, or error
    keyword_match = Column(JSON, nullable=True)

    # reviewer
    feedback = Column(Text, nullable=True)
    reviewed_by = Column(String(255), nullable=True)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)

    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )

    submission = relationship("Submission", back_populates="answers")
    question = relationship("Question")
