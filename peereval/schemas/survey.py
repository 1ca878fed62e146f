from datetime import datetime
from typing import Dict, List, Optional
from pydantic import Field
from peereval.schemas.common import CamelModel

class CriterionInput(CamelModel):
    label: str = Field(..., min_length=1)
    min_rating: Optional[int] = None
    max_rating: Optional[int] = None

class SurveyAssignRequest(CamelModel):
    project_id: int
    creator_id: int
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    deadline: datetime
    criteria: List[CriterionInput] = []

class AnswerInput(CamelModel):
    text: str = ""
    rating: Optional[int] = None

class SurveySubmitRequest(CamelModel):
    assignment_id: int
    respondent_id: int
    project_id: int
    # target student id -> criterion id -> answer
    answers: Dict[int, Dict[str, AnswerInput]]
