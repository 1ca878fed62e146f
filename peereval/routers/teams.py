from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from peereval.core.security.auth import instructor_required
from peereval.db.session import get_db
from peereval.models.user import User
from peereval.schemas.team import TeamCreateRequest
from peereval.services.teams import create_team, serialize_team

router = APIRouter(prefix="/teams", tags=["teams"])


@router.post("/create")
def create(
    request: TeamCreateRequest,
    current_user: User = Depends(instructor_required),
    db: Session = Depends(get_db)
):
    team = create_team(db, request.project_id, request.student_ids, current_user.id)
    return {"team": serialize_team(team)}
