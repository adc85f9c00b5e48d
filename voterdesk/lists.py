from fastapi import APIRouter, Depends, status
from typing import Callable, List

from .auth import SessionContext, get_session, get_store
from .errors import AuthorizationDenied, ValidationFailed
from .schemas import NameRequest
from .store import RecordStore


def _require_list_manager(session: SessionContext = Depends(get_session)) -> SessionContext:
    if not session.capabilities.can_manage_lists:
        raise AuthorizationDenied("Only administrators can manage lists")
    return session


def make_list_router(prefix: str, label: str, lister: Callable, adder: Callable, deleter: Callable) -> APIRouter:
    """
    Routes for one of the named lists (islands, parties).
    lister/adder/deleter receive the RecordStore as first argument.
    """
    router = APIRouter(prefix=prefix, tags=[prefix.strip("/")])

    @router.get("", response_model=List[str])
    def list_names(session: SessionContext = Depends(get_session), store: RecordStore = Depends(get_store)):
        return lister(store)

    @router.post("", response_model=List[str], status_code=status.HTTP_201_CREATED)
    def add_name(
        req: NameRequest,
        session: SessionContext = Depends(_require_list_manager),
        store: RecordStore = Depends(get_store),
    ):
        name = req.name.strip()
        if not name:
            raise ValidationFailed({"name": f"{label} name is required"})
        adder(store, name)
        store.audit(session.user.id, f"{label.lower()}_added", session.ip)
        return lister(store)

    @router.put("/{name}")
    def rename(name: str, req: NameRequest, session: SessionContext = Depends(_require_list_manager)):
        raise ValidationFailed({"name": "Renaming items is not supported"})

    @router.delete("/{name}", response_model=List[str])
    def delete_name(
        name: str,
        session: SessionContext = Depends(_require_list_manager),
        store: RecordStore = Depends(get_store),
    ):
        deleter(store, name)
        store.audit(session.user.id, f"{label.lower()}_deleted", session.ip)
        return lister(store)

    return router


islands_router = make_list_router(
    "/islands", "Island", RecordStore.list_islands, RecordStore.add_island, RecordStore.delete_island
)
parties_router = make_list_router(
    "/parties", "Party", RecordStore.list_parties, RecordStore.add_party, RecordStore.delete_party
)
