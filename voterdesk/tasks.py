from fastapi import APIRouter, Depends, status
from typing import List

from .auth import SessionContext, get_session, get_store, require_admin
from .errors import AuthorizationDenied, NotFound, ValidationFailed
from .schemas import TaskCreate, TaskRecord, TaskStatusUpdate
from .store import RecordStore


router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.get("", response_model=List[TaskRecord])
def list_tasks(session: SessionContext = Depends(get_session), store: RecordStore = Depends(get_store)):
    # Admin ve todas las tareas; el resto sólo las asignadas a sí mismo
    if session.is_admin:
        return store.list_tasks()
    return store.list_tasks(assignee_id=session.user.id)


@router.post("", response_model=TaskRecord, status_code=status.HTTP_201_CREATED)
def create_task(
    req: TaskCreate,
    session: SessionContext = Depends(require_admin),
    store: RecordStore = Depends(get_store),
):
    title = req.title.strip()
    errors = {}
    if not title:
        errors["title"] = "Task title is required."
    if not req.assigned_to_user_id:
        errors["assigned_to_user_id"] = "Please select a user to assign the task to."
    if errors:
        raise ValidationFailed(errors)

    try:
        store.get_user(req.assigned_to_user_id)
    except NotFound:
        raise ValidationFailed({"assigned_to_user_id": "Assigned user does not exist."})

    task = store.create_task(title, req.description, req.assigned_to_user_id, session.user.id)
    store.audit(session.user.id, "task_created", session.ip)
    return task


@router.patch("/{task_id}/status", response_model=TaskRecord)
def update_task_status(
    task_id: str,
    req: TaskStatusUpdate,
    session: SessionContext = Depends(get_session),
    store: RecordStore = Depends(get_store),
):
    task = store.get_task(task_id)
    if task.assigned_to_user_id != session.user.id:
        raise AuthorizationDenied("Only the assigned user can change the task status")
    return store.set_task_status(task_id, req.status)


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_task(
    task_id: str,
    session: SessionContext = Depends(require_admin),
    store: RecordStore = Depends(get_store),
):
    store.delete_task(task_id)
    store.audit(session.user.id, "task_deleted", session.ip)
