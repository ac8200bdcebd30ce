# review_engine/models/question.py
from sqlalchemy import Column, Integer, String, Text, DateTime, Numeric, ForeignKey, JSON, Enum
from sqlalchemy.sql import func
from review_engine.db.base import Base
from review_engine.models.enums import ScoringType, enum_values


class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    contest_id = Column(Integer, ForeignKey("contests.id"), nullable=True, index=True)

    title = Column(String(255), nullable=True)
    question_text = Column(Text, nullable=False, default="")

    max_score = Column(Numeric(8, 2), nullable=False, default=0)
    scoring_type = Column(
        Enum(ScoringType, name="scoring_type", values_callable=enum_values),
        nullable=False,
        default=ScoringType.MANUAL,
    )
    # ordered list of keywords, empty for manual questions
    keywords = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
    )
