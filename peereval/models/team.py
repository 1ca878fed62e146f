from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship
from peereval.db.base import Base

class Team(Base):
    __tablename__ = "teams"
    id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    name = Column(String, nullable=False)

    project = relationship("Project", back_populates="teams")
    members = relationship("TeamMember", back_populates="team", order_by="TeamMember.student_id")

class TeamMember(Base):
    __tablename__ = "team_members"
    team_id = Column(Integer, ForeignKey("teams.id"), primary_key=True)
    student_id = Column(Integer, ForeignKey("users.id"), primary_key=True)

    team = relationship("Team", back_populates="members")
    student = relationship("User", back_populates="team_memberships")
