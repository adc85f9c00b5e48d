"""
Record store: acceso a la base de datos para todas las entidades.

Every read returns typed pydantic records; every backend failure comes out
as a StoreError whose kind tells the caller which remediation to show.
"""

import logging
import re
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .errors import Conflict, NotFound, StoreError, StoreErrorKind
from .models import AuditLog, ElectionSetting, Island, Message, Party, Task, User, Voter, now_ms
from .remediation import remediation_for
from .schemas import (
    AuditLogItem,
    AuditLogPage,
    ChatMessage,
    ElectionSettings,
    TaskRecord,
    UserCreate,
    VoterCandidate,
    VoterRecord,
)


logger = logging.getLogger(__name__)

DEFAULT_ISLANDS = [
    "Male",
    "Hulhumale",
    "Villingili",
    "Addu City",
    "Fuvahmulah",
    "Kulhudhuffushi",
    "Thinadhoo",
    "Naifaru",
]

DEFAULT_PARTIES = [
    "Independent",
    "MDP",
    "PPM",
    "PNC",
    "Democrats",
    "JP",
    "MDA",
    "Adhaalath",
]

# códigos SQLSTATE de Postgres
_PG_CODES = {
    "42P01": StoreErrorKind.MISSING_TABLE,
    "42703": StoreErrorKind.MISSING_COLUMN,
    "42501": StoreErrorKind.PERMISSION_DENIED,
}

_TABLE_PATTERNS = [
    re.compile(r"no such table: (?:\w+\.)?(\w+)"),
    re.compile(r'relation "(?:\w+\.)?(\w+)" does not exist'),
]

_COLUMN_PATTERNS = [
    re.compile(r"no such column: (?:\w+\.)?(\w+)"),
    re.compile(r"has no column named (\w+)"),
    re.compile(r'column (?:\w+\.)?"?(\w+)"? (?:of relation "\w+" )?does not exist'),
]


def _first_match(patterns, text: str) -> Optional[str]:
    for pattern in patterns:
        m = pattern.search(text)
        if m:
            return m.group(1)
    return None


def classify_store_error(exc: SQLAlchemyError) -> Tuple[StoreErrorKind, Optional[str], Optional[str]]:
    """Return (kind, table, column) for a SQLAlchemy failure."""
    orig = getattr(exc, "orig", None)
    text = str(orig if orig is not None else exc)
    lowered = text.lower()
    table = _first_match(_TABLE_PATTERNS, text)
    column = _first_match(_COLUMN_PATTERNS, text)

    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode in _PG_CODES:
        return _PG_CODES[pgcode], table, column

    if isinstance(exc, IntegrityError):
        return StoreErrorKind.CONSTRAINT, table, column
    if table or "no such table" in lowered:
        return StoreErrorKind.MISSING_TABLE, table, column
    if column:
        return StoreErrorKind.MISSING_COLUMN, table, column
    if "permission denied" in lowered or "row-level security" in lowered:
        return StoreErrorKind.PERMISSION_DENIED, table, column
    return StoreErrorKind.UNAVAILABLE, table, column


def to_store_error(exc: SQLAlchemyError) -> StoreError:
    kind, table, column = classify_store_error(exc)
    if kind == StoreErrorKind.CONSTRAINT:
        message = "The change violates a database constraint"
    elif kind == StoreErrorKind.UNAVAILABLE:
        message = "The database is unavailable"
    else:
        message = f"Database error ({kind.value})"
    return StoreError(kind, message, remediation=remediation_for(kind, table, column))


class RecordStore:
    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def guard(self) -> Iterator[None]:
        try:
            yield
        except SQLAlchemyError as exc:
            self.db.rollback()
            error = to_store_error(exc)
            logger.error("Store operation failed: %s (%s)", error.kind.value, exc)
            raise error from exc

    # ------------------------------- system -------------------------------

    def has_users(self) -> bool:
        with self.guard():
            return self.db.query(User).count() > 0

    # ------------------------------- users -------------------------------

    def list_users(self) -> List[User]:
        with self.guard():
            return self.db.query(User).order_by(User.username.asc()).all()

    def get_user(self, user_id: str) -> User:
        with self.guard():
            user = self.db.get(User, user_id)
        if user is None:
            raise NotFound("User", user_id)
        return user

    def find_user(self, username: str) -> Optional[User]:
        with self.guard():
            return self.db.query(User).filter(User.username == username).first()

    def create_user(self, req: UserCreate) -> User:
        if self.find_user(req.username):
            raise Conflict("Username already exists")
        user = User(
            username=req.username,
            password=req.password,
            full_name=req.full_name,
            role=req.role,
            email=req.email,
        )
        with self.guard():
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        return user

    def update_user(self, user_id: str, changes: Dict[str, object]) -> User:
        user = self.get_user(user_id)
        for field, value in changes.items():
            setattr(user, field, value)
        with self.guard():
            self.db.commit()
            self.db.refresh(user)
        return user

    def delete_user(self, user_id: str) -> None:
        user = self.get_user(user_id)
        with self.guard():
            self.db.delete(user)
            self.db.commit()

    # ------------------------------- voters -------------------------------

    def list_voters(self) -> List[VoterRecord]:
        with self.guard():
            rows = self.db.query(Voter).order_by(Voter.created_at.desc()).all()
        return [VoterRecord.model_validate(r) for r in rows]

    def _voter_row(self, voter_id: str) -> Voter:
        with self.guard():
            row = self.db.get(Voter, voter_id)
        if row is None:
            raise NotFound("Voter", voter_id)
        return row

    def get_voter(self, voter_id: str) -> VoterRecord:
        return VoterRecord.model_validate(self._voter_row(voter_id))

    def create_voter(self, candidate: VoterCandidate) -> VoterRecord:
        row = Voter(**candidate.model_dump())
        with self.guard():
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        return VoterRecord.model_validate(row)

    def update_voter(self, voter_id: str, changes: Dict[str, object]) -> VoterRecord:
        row = self._voter_row(voter_id)
        for field, value in changes.items():
            setattr(row, field, value)
        row.updated_at = now_ms()
        with self.guard():
            self.db.commit()
            self.db.refresh(row)
        return VoterRecord.model_validate(row)

    def delete_voter(self, voter_id: str) -> None:
        row = self._voter_row(voter_id)
        with self.guard():
            self.db.delete(row)
            self.db.commit()

    # ------------------------- islands & parties -------------------------

    def _list_names(self, model, defaults: List[str]) -> List[str]:
        with self.guard():
            names = [r.name for r in self.db.query(model).order_by(model.name.asc()).all()]
        return names or list(defaults)

    def _add_name(self, model, name: str) -> None:
        with self.guard():
            if self.db.get(model, name) is not None:
                raise Conflict(f"'{name}' already exists")
            self.db.add(model(name=name))
            self.db.commit()

    def _delete_name(self, model, name: str) -> None:
        with self.guard():
            row = self.db.get(model, name)
            if row is None:
                raise NotFound(model.__name__, name)
            self.db.delete(row)
            self.db.commit()

    def list_islands(self) -> List[str]:
        return self._list_names(Island, DEFAULT_ISLANDS)

    def add_island(self, name: str) -> None:
        self._add_name(Island, name)

    def delete_island(self, name: str) -> None:
        self._delete_name(Island, name)

    def list_parties(self) -> List[str]:
        return self._list_names(Party, DEFAULT_PARTIES)

    def add_party(self, name: str) -> None:
        self._add_name(Party, name)

    def delete_party(self, name: str) -> None:
        self._delete_name(Party, name)

    # ------------------------------ settings ------------------------------

    def get_election_settings(self) -> ElectionSettings:
        with self.guard():
            row = self.db.get(ElectionSetting, 1)
        if row is None:
            return ElectionSettings()
        return ElectionSettings(election_start=row.election_start, election_end=row.election_end)

    def save_election_settings(self, config: ElectionSettings) -> ElectionSettings:
        with self.guard():
            row = self.db.get(ElectionSetting, 1)
            if row is None:
                row = ElectionSetting(id=1)
                self.db.add(row)
            row.election_start = config.election_start
            row.election_end = config.election_end
            self.db.commit()
        return config

    # ------------------------------ messages ------------------------------

    def list_messages(self, limit: int) -> List[ChatMessage]:
        with self.guard():
            rows = (
                self.db.query(Message)
                .order_by(Message.created_at.desc(), Message.id.desc())
                .limit(limit)
                .all()
            )
        return [ChatMessage.model_validate(r) for r in reversed(rows)]

    def create_message(self, user: User, content: str) -> ChatMessage:
        row = Message(user_id=user.id, user_name=user.full_name, content=content)
        with self.guard():
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        return ChatMessage.model_validate(row)

    def get_message(self, message_id: str) -> ChatMessage:
        with self.guard():
            row = self.db.get(Message, message_id)
        if row is None:
            raise NotFound("Message", message_id)
        return ChatMessage.model_validate(row)

    def delete_message(self, message_id: str) -> None:
        with self.guard():
            row = self.db.get(Message, message_id)
            if row is None:
                raise NotFound("Message", message_id)
            self.db.delete(row)
            self.db.commit()

    # ------------------------------- tasks -------------------------------

    def list_tasks(self, assignee_id: Optional[str] = None) -> List[TaskRecord]:
        with self.guard():
            q = self.db.query(Task)
            if assignee_id is not None:
                q = q.filter(Task.assigned_to_user_id == assignee_id)
            rows = q.order_by(Task.created_at.desc()).all()
        return [TaskRecord.model_validate(r) for r in rows]

    def _task_row(self, task_id: str) -> Task:
        with self.guard():
            row = self.db.get(Task, task_id)
        if row is None:
            raise NotFound("Task", task_id)
        return row

    def get_task(self, task_id: str) -> TaskRecord:
        return TaskRecord.model_validate(self._task_row(task_id))

    def create_task(self, title: str, description: Optional[str], assigned_to: str, assigned_by: str) -> TaskRecord:
        row = Task(
            title=title,
            description=description or "",
            assigned_to_user_id=assigned_to,
            assigned_by_user_id=assigned_by,
            status="pending",
        )
        with self.guard():
            self.db.add(row)
            self.db.commit()
            self.db.refresh(row)
        return TaskRecord.model_validate(row)

    def set_task_status(self, task_id: str, status: str) -> TaskRecord:
        row = self._task_row(task_id)
        row.status = status
        with self.guard():
            self.db.commit()
            self.db.refresh(row)
        return TaskRecord.model_validate(row)

    def delete_task(self, task_id: str) -> None:
        row = self._task_row(task_id)
        with self.guard():
            self.db.delete(row)
            self.db.commit()

    # ------------------------------- audit -------------------------------

    def audit(self, user_id: Optional[str], action: str, ip: Optional[str] = None) -> None:
        with self.guard():
            self.db.add(AuditLog(user_id=user_id, action=action, ip=ip))
            self.db.commit()

    def list_logs(self, page: int, page_size: int) -> AuditLogPage:
        with self.guard():
            total = self.db.query(AuditLog).count()
            rows = (
                self.db.query(AuditLog)
                .order_by(AuditLog.id.desc())
                .offset((page - 1) * page_size)
                .limit(page_size)
                .all()
            )
            items = [
                AuditLogItem(
                    id=lg.id,
                    username=lg.user.username if lg.user else None,
                    action=lg.action,
                    ip=lg.ip,
                    timestamp=lg.timestamp,
                )
                for lg in rows
            ]
        return AuditLogPage(items=items, page=page, page_size=page_size, total=total)
