from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship

from app.db import Base


class Questionnaire(Base):
    __tablename__ = "questionnaires"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    kind = Column(String(16), default="risk", nullable=False, index=True)  # risk/climate
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    questions = relationship(
        "Question",
        back_populates="questionnaire",
        cascade="all, delete-orphan",
        order_by="Question.order_index",
    )
    assessments = relationship("Assessment", back_populates="questionnaire")


class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    questionnaire_id = Column(Integer, ForeignKey("questionnaires.id"), nullable=False, index=True)
    text = Column(Text, default="", nullable=False)
    category = Column(String(64), default="", nullable=False, index=True)
    # numeric-scale/single-choice/open-text/nps-0-10
    type = Column(String(32), default="numeric-scale", nullable=False)
    scale_max = Column(Integer, default=5, nullable=False)
    order_index = Column(Integer, default=0, nullable=False)

    questionnaire = relationship("Questionnaire", back_populates="questions")


class Assessment(Base):
    __tablename__ = "assessments"

    id = Column(Integer, primary_key=True, index=True)
    organization_id = Column(String(64), default="", nullable=False, index=True)
    organization_name = Column(String(255), default="", nullable=False)
    title = Column(String(255), nullable=False)
    questionnaire_id = Column(Integer, ForeignKey("questionnaires.id"), nullable=False, index=True)
    status = Column(String(16), default="open", nullable=False, index=True)  # open/closed
    end_date = Column(DateTime, nullable=True)
    expected_participants = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    questionnaire = relationship("Questionnaire", back_populates="assessments")
    responses = relationship("SurveyResponse", back_populates="assessment", cascade="all, delete-orphan")
    artifacts = relationship("GeneratedArtifact", back_populates="assessment", cascade="all, delete-orphan")

    @property
    def questionnaire_kind(self) -> str:
        return str(getattr(self.questionnaire, "kind", "") or "risk")


class SurveyResponse(Base):
    __tablename__ = "responses"
    __table_args__ = (Index("ix_responses_assessment_question", "assessment_id", "question_id"),)

    id = Column(Integer, primary_key=True, index=True)
    assessment_id = Column(Integer, ForeignKey("assessments.id"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False, index=True)
    anonymous_id = Column(String(64), nullable=False, index=True)
    response_text = Column(Text, default="", nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    assessment = relationship("Assessment", back_populates="responses")
    question = relationship("Question")


class GeneratedArtifact(Base):
    __tablename__ = "generated_artifacts"
    __table_args__ = (Index("ix_generated_artifacts_assessment_kind", "assessment_id", "kind"),)

    id = Column(Integer, primary_key=True, index=True)
    assessment_id = Column(Integer, ForeignKey("assessments.id"), nullable=False, index=True)
    kind = Column(String(32), nullable=False, index=True)  # report/action_plan
    title = Column(String(255), nullable=False)
    payload_json = Column(Text, default="{}", nullable=False)
    status = Column(String(16), default="completed", nullable=False, index=True)  # completed/failed
    source = Column(String(64), default="template", nullable=False)
    decision_log_json = Column(Text, default="[]", nullable=False)
    generation_time_ms = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

    assessment = relationship("Assessment", back_populates="artifacts")
