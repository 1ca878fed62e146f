import logging

from sqlalchemy.orm import Session

from peereval.core.exceptions import BusinessRuleError, ForbiddenError, NotFoundError, ValidationError
from peereval.models.invite import Invite, InviteStatus
from peereval.models.project import Project
from peereval.models.user import User, RoleType

logger = logging.getLogger(__name__)

RESPONSE_STATUSES = {InviteStatus.ACCEPTED.value, InviteStatus.REJECTED.value}


def send_invite(db: Session, project_id: int, student_email: str, instructor_id: int) -> Invite:
    """Invite a registered student to a project; one invite per student and project."""
    instructor = db.query(User).filter(User.id == instructor_id).first()
    if not instructor or instructor.role != RoleType.INSTRUCTOR:
        raise ForbiddenError("Unauthorized")

    project = db.query(Project).filter(Project.id == project_id).first()
    if not project:
        raise NotFoundError("Project not found")
    if project.instructor_id != instructor.id:
        raise ForbiddenError("This project does not belong to you")

    student = db.query(User).filter(User.email == student_email).first()
    if not student or student.role != RoleType.STUDENT:
        raise NotFoundError("Student not found")

    existing = db.query(Invite).filter(
        Invite.project_id == project_id,
        Invite.student_id == student.id,
    ).first()
    if existing:
        raise BusinessRuleError("Invite already sent to this student")

    invite = Invite(project_id=project_id, student_id=student.id, status=InviteStatus.PENDING)
    db.add(invite)
    db.commit()
    db.refresh(invite)
    logger.info(f"Invited student {student.id} to project {project_id}")
    return invite


def respond_to_invite(db: Session, invite_id: int, status: str, student_id: int) -> Invite:
    if status not in RESPONSE_STATUSES:
        raise ValidationError("Invalid status")

    invite = db.query(Invite).filter(Invite.id == invite_id).first()
    if not invite or invite.student_id != student_id:
        raise NotFoundError("Invite not found or unauthorized")

    invite.status = InviteStatus(status)
    db.commit()
    db.refresh(invite)
    logger.info(f"Student {student_id} {status} invite {invite_id}")
    return invite
