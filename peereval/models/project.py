from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
from peereval.db.base import Base

class Project(Base):
    __tablename__ = "projects"
    id = Column(Integer, primary_key=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    instructor_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    instructor = relationship("User", back_populates="projects")
    invites = relationship("Invite", back_populates="project")
    teams = relationship("Team", back_populates="project", order_by="Team.id")
    survey_assignments = relationship("SurveyAssignment", back_populates="project")
