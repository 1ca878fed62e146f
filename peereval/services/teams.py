import logging
from typing import List, Optional

from sqlalchemy.orm import Session

from peereval.core.exceptions import BusinessRuleError, ForbiddenError, NotFoundError, ValidationError
from peereval.models.invite import Invite, InviteStatus
from peereval.models.project import Project
from peereval.models.team import Team, TeamMember
from peereval.models.user import User

logger = logging.getLogger(__name__)


def find_student_team(db: Session, project_id: int, student_id: int) -> Optional[Team]:
    """Return the team the student belongs to within the project, if any."""
    return (
        db.query(Team)
        .join(TeamMember, TeamMember.team_id == Team.id)
        .filter(Team.project_id == project_id, TeamMember.student_id == student_id)
        .first()
    )


def team_member_ids(team: Team) -> List[int]:
    return [member.student_id for member in team.members]


def serialize_member(member: TeamMember) -> dict:
    return {
        "teamId": member.team_id,
        "studentId": member.student_id,
        "student": {
            "id": member.student.id,
            "name": member.student.name,
            "email": member.student.email,
        },
    }


def my_team(db: Session, project_id: int, student_id: int) -> List[dict]:
    """Members of the student's team in the project; empty when unassigned."""
    team = find_student_team(db, project_id, student_id)
    if team is None:
        return []
    return [serialize_member(member) for member in team.members]


def unassigned_students(db: Session, project_id: int) -> List[dict]:
    """Students who accepted an invite to the project but are not yet on a team."""
    assigned = (
        db.query(TeamMember.student_id)
        .join(Team, Team.id == TeamMember.team_id)
        .filter(Team.project_id == project_id)
    )
    students = (
        db.query(User)
        .join(Invite, Invite.student_id == User.id)
        .filter(
            Invite.project_id == project_id,
            Invite.status == InviteStatus.ACCEPTED,
            ~User.id.in_(assigned),
        )
        .order_by(User.id)
        .all()
    )
    return [{"id": s.id, "name": s.name, "email": s.email} for s in students]


def next_team_name(db: Session, project_id: int) -> str:
    existing = db.query(Team).filter(Team.project_id == project_id).count()
    return f"Team {existing + 1}"


def create_team(db: Session, project_id: int, student_ids: List[int], instructor_id: int) -> Team:
    """
    Group accepted, unassigned students of a project into a new team.

    Raises:
        ValidationError: student_ids is empty
        NotFoundError: the project does not exist
        ForbiddenError: the project belongs to another instructor
        BusinessRuleError: a student has not accepted an invite or already has a team
    """
    if not student_ids:
        raise ValidationError("Invalid input")

    project = db.query(Project).filter(Project.id == project_id).first()
    if not project:
        raise NotFoundError("Project not found")
    if project.instructor_id != instructor_id:
        raise ForbiddenError("Unauthorized")

    unique_ids = list(dict.fromkeys(student_ids))
    accepted = {
        invite.student_id
        for invite in db.query(Invite).filter(
            Invite.project_id == project_id,
            Invite.student_id.in_(unique_ids),
            Invite.status == InviteStatus.ACCEPTED,
        )
    }
    missing = [sid for sid in unique_ids if sid not in accepted]
    if missing:
        raise BusinessRuleError(f"Students have not accepted an invite to this project: {missing}")

    for student_id in unique_ids:
        if find_student_team(db, project_id, student_id) is not None:
            raise BusinessRuleError(f"Student {student_id} is already on a team")

    team = Team(project_id=project_id, name=next_team_name(db, project_id))
    db.add(team)
    db.flush()
    for student_id in unique_ids:
        db.add(TeamMember(team_id=team.id, student_id=student_id))

    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(team)

    logger.info(f"Created {team.name} in project {project_id} with {len(unique_ids)} members")
    return team


def serialize_team(team: Team) -> dict:
    return {
        "id": team.id,
        "name": team.name,
        "projectId": team.project_id,
        "members": [serialize_member(member) for member in team.members],
    }
