from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from peereval.core.security.auth import ensure_acting_as, get_current_user
from peereval.db.session import get_db
from peereval.models.user import User
from peereval.schemas.project import InviteRespondRequest, InviteSendRequest
from peereval.services.invites import respond_to_invite, send_invite
from peereval.services.projects import serialize_invite

router = APIRouter(prefix="/invites", tags=["invites"])


@router.post("/send")
def send(
    request: InviteSendRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    ensure_acting_as(current_user, request.instructor_id)
    invite = send_invite(db, request.project_id, request.student_email, request.instructor_id)
    return {"success": True, "invite": serialize_invite(invite)}


@router.post("/respond")
def respond(
    request: InviteRespondRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    ensure_acting_as(current_user, request.student_id)
    invite = respond_to_invite(db, request.invite_id, request.status, request.student_id)
    return {"invite": serialize_invite(invite)}
