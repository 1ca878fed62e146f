from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from peereval.db.base import Base

class Survey(Base):
    __tablename__ = "surveys"
    id = Column(Integer, primary_key=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    creator_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    creator = relationship("User", foreign_keys=[creator_id])
    assignments = relationship("SurveyAssignment", back_populates="survey")

class SurveyCriterion(Base):
    __tablename__ = "survey_criteria"
    id = Column(Integer, primary_key=True)
    survey_id = Column(Integer, ForeignKey("surveys.id"), nullable=False, index=True)
    label = Column(String, nullable=False)
    min_rating = Column(Integer, nullable=False, default=1)
    max_rating = Column(Integer, nullable=False, default=5)
    order = Column(Integer, nullable=False)

class SurveyAssignment(Base):
    __tablename__ = "survey_assignments"
    id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    survey_id = Column(Integer, ForeignKey("surveys.id"), nullable=False)
    deadline = Column(DateTime(timezone=True), nullable=False)
    status = Column(String, nullable=False, default="active")
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    project = relationship("Project", back_populates="survey_assignments")
    survey = relationship("Survey", back_populates="assignments")
    responses = relationship("SurveyResponse", back_populates="assignment")

class SurveyResponse(Base):
    __tablename__ = "survey_responses"
    __table_args__ = (
        UniqueConstraint(
            "assignment_id", "respondent_id", "target_student_id",
            name="uq_response_assignment_respondent_target",
        ),
    )

    id = Column(Integer, primary_key=True)
    assignment_id = Column(Integer, ForeignKey("survey_assignments.id"), nullable=False, index=True)
    respondent_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    target_student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    # criterion id (as string) -> {"text": str, "rating": int}
    answers = Column(JSON, nullable=False, default=dict)
    submitted_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    assignment = relationship("SurveyAssignment", back_populates="responses")
    respondent = relationship("User", foreign_keys=[respondent_id])
    target_student = relationship("User", foreign_keys=[target_student_id])
