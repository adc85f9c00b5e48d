from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List, Literal
from datetime import datetime


Role = Literal["admin", "user", "mamdhoob"]
Gender = Literal["Male", "Female"]
TaskStatus = Literal["pending", "completed"]

DEFAULT_PARTY = "Independent"


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ------------------------------- Users / auth -------------------------------

class UserPublic(ORMModel):
    id: str
    username: str
    full_name: str
    role: Role
    email: Optional[str] = None


class UserCreate(BaseModel):
    username: str = Field(..., min_length=1, max_length=150)
    password: str = Field(..., min_length=1)
    full_name: str = Field(..., min_length=1)
    role: Role = "user"
    email: Optional[str] = None


class UserUpdate(BaseModel):
    password: Optional[str] = Field(default=None, min_length=1)
    full_name: Optional[str] = Field(default=None, min_length=1)
    email: Optional[str] = None
    role: Optional[Role] = None


class SetupRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=150)
    password: str = Field(..., min_length=1)
    full_name: str = Field(..., min_length=1)


class LoginRequest(BaseModel):
    username: str
    password: str


class ProfileUpdate(BaseModel):
    full_name: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class Capabilities(BaseModel):
    can_create_voter: bool
    can_delete_voter: bool
    can_edit_voter_details: bool
    can_edit_vote_status: bool
    can_manage_lists: bool
    is_read_only: bool


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserPublic


class MeResponse(BaseModel):
    user: UserPublic
    capabilities: Capabilities


class SystemStatus(BaseModel):
    status: Literal["ok", "needs_setup", "store_error"]
    kind: Optional[str] = None
    remediation: Optional[str] = None


# --------------------------------- Voters ---------------------------------

class VoterCandidate(BaseModel):
    """
    Voter form payload. Fields are deliberately loose: the voter validator
    reports problems per field instead of rejecting the whole body.
    """
    id_card_number: str = ""
    full_name: str = ""
    gender: Optional[str] = None
    address: str = ""
    island: str = ""
    phone_number: Optional[str] = None
    has_voted: bool = False
    registrar_party: Optional[str] = None
    sheema: bool = False
    sadiq: bool = False
    communicated: bool = False
    notes: Optional[str] = None


class VoterPatch(BaseModel):
    id_card_number: Optional[str] = None
    full_name: Optional[str] = None
    gender: Optional[str] = None
    address: Optional[str] = None
    island: Optional[str] = None
    phone_number: Optional[str] = None
    has_voted: Optional[bool] = None
    registrar_party: Optional[str] = None
    sheema: Optional[bool] = None
    sadiq: Optional[bool] = None
    communicated: Optional[bool] = None
    notes: Optional[str] = None


class VoterRecord(ORMModel):
    id: str
    id_card_number: str
    full_name: str
    gender: Optional[Gender] = None
    address: str = ""
    island: str
    phone_number: Optional[str] = None
    has_voted: bool = False
    registrar_party: Optional[str] = None
    sheema: bool = False
    sadiq: bool = False
    communicated: bool = False
    notes: Optional[str] = None
    created_at: int
    updated_at: int

    @field_validator("gender", mode="before")
    @classmethod
    def blank_gender(cls, v):
        return v or None

    @field_validator("address", mode="before")
    @classmethod
    def null_address(cls, v):
        return v or ""

    @field_validator("sheema", "sadiq", "communicated", "has_voted", mode="before")
    @classmethod
    def null_flag(cls, v):
        return bool(v)

    @property
    def party(self) -> str:
        return self.registrar_party or DEFAULT_PARTY


class VoterUpdateResult(BaseModel):
    voter: VoterRecord
    ignored_fields: List[str] = []


# ------------------------------ Lists / settings ------------------------------

class NameRequest(BaseModel):
    name: str


class ElectionSettings(BaseModel):
    election_start: int = 0
    election_end: int = 0


class Countdown(BaseModel):
    phase: Literal["not_configured", "upcoming", "running", "ended"]
    days: int = 0
    hours: int = 0
    minutes: int = 0


# -------------------------------- Statistics --------------------------------

class SliceStats(BaseModel):
    total: int = 0
    voted: int = 0
    percentage: int = 0


class GroupStats(SliceStats):
    name: str


class TurnoutStats(BaseModel):
    total: int = 0
    voted: int = 0
    pending: int = 0
    percentage: int = 0
    sheema: SliceStats = SliceStats()
    sadiq: SliceStats = SliceStats()
    communicated: SliceStats = SliceStats()
    by_island: List[GroupStats] = []
    by_party: List[GroupStats] = []


# ------------------------------- Tasks / chat -------------------------------

class TaskCreate(BaseModel):
    title: str
    description: Optional[str] = None
    assigned_to_user_id: str


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


class TaskRecord(ORMModel):
    id: str
    title: str
    description: Optional[str] = None
    assigned_to_user_id: str
    assigned_by_user_id: str
    status: TaskStatus
    created_at: int


class MessageCreate(BaseModel):
    content: str


class ChatMessage(ORMModel):
    id: str
    user_id: str
    user_name: str
    content: str
    created_at: int


# --------------------------------- Auditoría ---------------------------------

class AuditLogItem(BaseModel):
    id: int
    username: Optional[str]
    action: str
    ip: Optional[str]
    timestamp: datetime


class AuditLogPage(BaseModel):
    items: List[AuditLogItem]
    page: int
    page_size: int
    total: int
