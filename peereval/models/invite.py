from sqlalchemy import Column, Integer, ForeignKey, DateTime, Enum, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime, timezone
import enum
from peereval.db.base import Base

class InviteStatus(enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"

class Invite(Base):
    __tablename__ = "invites"
    __table_args__ = (UniqueConstraint("project_id", "student_id", name="uq_invite_project_student"),)

    id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey("projects.id"), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(
        Enum(InviteStatus, values_callable=lambda e: [m.value for m in e]),
        nullable=False,
        default=InviteStatus.PENDING,
    )
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    project = relationship("Project", back_populates="invites")
    student = relationship("User", back_populates="invites")
