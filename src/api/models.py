from pydantic import BaseModel, Field
from typing import Dict, Any, List, Optional

from studio.models import Language, Platform


class ImportRequest(BaseModel):
    url: str = Field(min_length=1)
    language: Language = Language.PORTUGUESE


class CreativeRequest(BaseModel):
    platform: Platform = Platform.TIKTOK


class MarginRequest(BaseModel):
    margin: float = Field(ge=-100)


class CredentialRequest(BaseModel):
    api_key: str = Field(min_length=1)


class WorkflowEvent(BaseModel):
    kind: str
    status: str
    message: str
    recorded_at: str
    details: Dict[str, Any] = {}


class Notice(BaseModel):
    kind: str
    operation: str
    message: str
    blocking: bool


class WorkflowStateView(BaseModel):
    step: str
    language: str
    margin: float
    selling_price: float
    product: Optional[Dict[str, Any]] = None
    creatives: Optional[Dict[str, Any]] = None
    sales_page: Optional[Dict[str, Any]] = None
    loading: Dict[str, bool]


class SessionView(BaseModel):
    session_id: str
    guard: str
    mock_mode: bool
    state: WorkflowStateView
    notices: List[Notice]


class EventsResponse(BaseModel):
    session_id: str
    events: List[WorkflowEvent]
