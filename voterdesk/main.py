from fastapi import FastAPI, Depends, Request, status
from fastapi.responses import JSONResponse, Response
from typing import List, Optional
import logging

from .database import init_db
from .auth import router as auth_router, SessionContext, get_session, get_store, require_admin
from .chat import router as chat_router
from .tasks import router as tasks_router
from .lists import islands_router, parties_router
from .config import settings
from .errors import AuthorizationDenied, Conflict, ValidationFailed, VoterDeskError
from .exports import export_filename, voters_csv, voters_print_html
from .logging_config import setup_logging
from .models import now_ms
from .schemas import (
    AuditLogPage,
    Countdown,
    DEFAULT_PARTY,
    ElectionSettings,
    TurnoutStats,
    UserCreate,
    UserPublic,
    UserUpdate,
    VoterCandidate,
    VoterPatch,
    VoterRecord,
    VoterUpdateResult,
)
from .stats import compute_stats, countdown, filter_voters, sort_for_listing
from .store import RecordStore
from .validation import apply_voter_update, check_voter, merged_candidate


logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME)


@app.exception_handler(VoterDeskError)
async def handle_domain_error(request: Request, exc: VoterDeskError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.on_event("startup")
def on_startup():
    setup_logging()
    init_db()
    logger.info("%s started (%s)", settings.APP_NAME, settings.ENVIRONMENT)


@app.get("/health")
def health():
    return {"status": "ok"}


app.include_router(auth_router)
app.include_router(chat_router)
app.include_router(tasks_router)
app.include_router(islands_router)
app.include_router(parties_router)


def raise_if_invalid(candidate, can_edit_details: bool):
    problems = check_voter(candidate, can_edit_details)
    if problems:
        raise ValidationFailed(
            {field: message for field, (_, message) in problems.items()},
            {field: code for field, (code, _) in problems.items()},
        )


def check_list_membership(store: RecordStore, island: Optional[str], party: Optional[str]):
    errors = {}
    if island is not None and island not in store.list_islands():
        errors["island"] = "Select a valid island"
    if party and party not in store.list_parties():
        errors["registrar_party"] = "Select a valid party"
    if errors:
        raise ValidationFailed(errors)


# ---------------------------------- users ----------------------------------

@app.get("/users", response_model=List[UserPublic])
def list_users(session: SessionContext = Depends(require_admin), store: RecordStore = Depends(get_store)):
    return store.list_users()


@app.post("/users", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
def create_user(req: UserCreate, session: SessionContext = Depends(require_admin), store: RecordStore = Depends(get_store)):
    user = store.create_user(req)
    store.audit(session.user.id, "user_created", session.ip)
    return user


@app.put("/users/{user_id}", response_model=UserPublic)
def update_user(
    user_id: str,
    req: UserUpdate,
    session: SessionContext = Depends(require_admin),
    store: RecordStore = Depends(get_store),
):
    user = store.get_user(user_id)
    if req.role is not None and req.role != user.role:
        raise ValidationFailed({"role": "Role cannot be changed after creation"})
    changes = req.model_dump(exclude_unset=True, exclude={"role"})
    user = store.update_user(user_id, {k: v for k, v in changes.items() if v is not None or k == "email"})
    store.audit(session.user.id, "user_updated", session.ip)
    return user


@app.delete("/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: str, session: SessionContext = Depends(require_admin), store: RecordStore = Depends(get_store)):
    if user_id == session.user.id:
        raise Conflict("You cannot delete your own account")
    store.delete_user(user_id)
    store.audit(session.user.id, "user_deleted", session.ip)


# ---------------------------------- voters ----------------------------------

def filtered_voters(
    store: RecordStore,
    island: Optional[str],
    party: Optional[str],
    category: Optional[str],
    q: Optional[str],
) -> List[VoterRecord]:
    return filter_voters(store.list_voters(), island=island, party=party, category=category, query=q)


@app.get("/voters", response_model=List[VoterRecord])
def list_voters(
    island: Optional[str] = None,
    party: Optional[str] = None,
    category: Optional[str] = None,
    q: Optional[str] = None,
    order: str = "created",
    session: SessionContext = Depends(get_session),
    store: RecordStore = Depends(get_store),
):
    voters = filtered_voters(store, island, party, category, q)
    if order == "address":
        voters = sort_for_listing(voters)
    return voters


@app.get("/voters/export.csv")
def export_voters_csv(
    island: Optional[str] = None,
    party: Optional[str] = None,
    category: Optional[str] = None,
    q: Optional[str] = None,
    session: SessionContext = Depends(get_session),
    store: RecordStore = Depends(get_store),
):
    voters = sort_for_listing(filtered_voters(store, island, party, category, q))
    filename = export_filename("voters_list_export", "csv")
    return Response(
        content=voters_csv(voters),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/voters/export.html")
def export_voters_html(
    island: Optional[str] = None,
    party: Optional[str] = None,
    category: Optional[str] = None,
    q: Optional[str] = None,
    session: SessionContext = Depends(get_session),
    store: RecordStore = Depends(get_store),
):
    voters = sort_for_listing(filtered_voters(store, island, party, category, q))
    heading = f"{island} Voters" if island else f"{party} Members" if party else "Voters Directory"
    return Response(content=voters_print_html(voters, heading=heading, query=q), media_type="text/html")


@app.get("/voters/{voter_id}", response_model=VoterRecord)
def get_voter(voter_id: str, session: SessionContext = Depends(get_session), store: RecordStore = Depends(get_store)):
    return store.get_voter(voter_id)


@app.post("/voters", response_model=VoterRecord, status_code=status.HTTP_201_CREATED)
def create_voter(
    req: VoterCandidate,
    session: SessionContext = Depends(get_session),
    store: RecordStore = Depends(get_store),
):
    if not session.capabilities.can_create_voter:
        raise AuthorizationDenied("Only administrators can register voters")

    raise_if_invalid(req, can_edit_details=True)
    candidate = req.model_copy(update={"registrar_party": req.registrar_party or DEFAULT_PARTY})
    check_list_membership(store, candidate.island, candidate.registrar_party)

    voter = store.create_voter(candidate)
    store.audit(session.user.id, "voter_created", session.ip)
    return voter


@app.put("/voters/{voter_id}", response_model=VoterUpdateResult)
def update_voter(
    voter_id: str,
    req: VoterPatch,
    session: SessionContext = Depends(get_session),
    store: RecordStore = Depends(get_store),
):
    existing = store.get_voter(voter_id)
    changes, ignored = apply_voter_update(existing, req, session.capabilities)

    if session.capabilities.can_edit_voter_details:
        raise_if_invalid(merged_candidate(existing, changes), can_edit_details=True)
        # sólo se comprueban los valores que cambian: una isla borrada no bloquea el resto
        new_island = changes.get("island")
        new_party = changes.get("registrar_party")
        check_list_membership(
            store,
            new_island if new_island != existing.island else None,
            new_party if new_party != existing.registrar_party else None,
        )

    voter = store.update_voter(voter_id, changes) if changes else existing
    if changes:
        action = "voter_updated" if session.capabilities.can_edit_voter_details else "vote_status_updated"
        store.audit(session.user.id, action, session.ip)
    return VoterUpdateResult(voter=voter, ignored_fields=ignored)


@app.delete("/voters/{voter_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_voter(voter_id: str, session: SessionContext = Depends(get_session), store: RecordStore = Depends(get_store)):
    if not session.capabilities.can_delete_voter:
        raise AuthorizationDenied("Access Denied: Only Admins can delete records.")
    store.delete_voter(voter_id)
    store.audit(session.user.id, "voter_deleted", session.ip)


# ------------------------------ stats & settings ------------------------------

@app.get("/stats", response_model=TurnoutStats)
def stats(session: SessionContext = Depends(get_session), store: RecordStore = Depends(get_store)):
    return compute_stats(store.list_voters())


@app.get("/settings/election", response_model=ElectionSettings)
def get_election_settings(session: SessionContext = Depends(get_session), store: RecordStore = Depends(get_store)):
    return store.get_election_settings()


@app.put("/settings/election", response_model=ElectionSettings)
def update_election_settings(
    req: ElectionSettings,
    session: SessionContext = Depends(require_admin),
    store: RecordStore = Depends(get_store),
):
    if req.election_end <= req.election_start:
        raise ValidationFailed({"election_end": "End date must be after the start date."})
    saved = store.save_election_settings(req)
    store.audit(session.user.id, "election_settings_updated", session.ip)
    return saved


@app.get("/settings/countdown", response_model=Countdown)
def get_countdown(session: SessionContext = Depends(get_session), store: RecordStore = Depends(get_store)):
    return countdown(store.get_election_settings(), now_ms())


# ---------------------------------- audit ----------------------------------

@app.get("/admin/logs", response_model=AuditLogPage)
def admin_logs(
    page: int = 1,
    page_size: int = 10,
    session: SessionContext = Depends(require_admin),
    store: RecordStore = Depends(get_store),
):
    return store.list_logs(max(page, 1), max(page_size, 1))
