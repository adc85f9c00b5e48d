from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
from jose import jwt
from jose.exceptions import JWTError
from dataclasses import dataclass
from datetime import datetime, timedelta
import logging
import secrets

from .config import settings
from .database import get_db
from .errors import AuthorizationDenied, Conflict, NotFound, StoreError
from .models import User
from .permissions import ADMIN, capabilities_for
from .schemas import (
    Capabilities,
    LoginRequest,
    MeResponse,
    ProfileUpdate,
    SetupRequest,
    SystemStatus,
    TokenResponse,
    UserCreate,
    UserPublic,
)
from .store import RecordStore


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@dataclass
class SessionContext:
    """Identity of the caller for one request, resolved from the bearer token."""
    user: User
    capabilities: Capabilities
    ip: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.user.role == ADMIN


def get_store(db: Session = Depends(get_db)) -> RecordStore:
    return RecordStore(db)


def client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


def verify_password(password: str, stored: str) -> bool:
    # Las contraseñas se guardan en texto plano (requisito del sistema)
    return secrets.compare_digest(password.encode(), stored.encode())


def create_access_token(data: dict, expires_delta: timedelta | None = None):
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.ALGORITHM)


def get_current_user(token: str, store: RecordStore) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token", headers={"WWW-Authenticate": "Bearer"}
    )
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.ALGORITHM])
        user_id: str = payload.get("sub")
        if user_id is None:
            raise credentials_exception
    except JWTError:
        raise credentials_exception
    try:
        return store.get_user(user_id)
    except NotFound:
        # usuario borrado o base reiniciada: la sesión ya no es válida
        raise credentials_exception


def get_session(request: Request, store: RecordStore = Depends(get_store)) -> SessionContext:
    authorization = request.headers.get("authorization")
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token required")
    token = authorization.split(" ", 1)[1]
    user = get_current_user(token, store)
    return SessionContext(user=user, capabilities=capabilities_for(user.role), ip=client_ip(request))


def require_admin(session: SessionContext = Depends(get_session)) -> SessionContext:
    if not session.is_admin:
        logger.info("Admin-only action refused for %s", session.user.username)
        raise AuthorizationDenied("Only administrators can perform this action")
    return session


@router.get("/status", response_model=SystemStatus)
def system_status(store: RecordStore = Depends(get_store)):
    try:
        has_users = store.has_users()
    except StoreError as e:
        return SystemStatus(status="store_error", kind=e.kind.value, remediation=e.remediation)
    return SystemStatus(status="ok" if has_users else "needs_setup")


@router.post("/setup", response_model=TokenResponse)
def setup_admin(req: SetupRequest, request: Request, store: RecordStore = Depends(get_store)):
    if store.has_users():
        raise Conflict("Setup already completed")

    user = store.create_user(
        UserCreate(username=req.username, password=req.password, full_name=req.full_name, role=ADMIN)
    )
    store.audit(user.id, "setup_admin", client_ip(request))
    logger.info("Initial administrator %s created", user.username)

    token = create_access_token({"sub": user.id, "role": user.role})
    return TokenResponse(access_token=token, user=UserPublic.model_validate(user))


@router.post("/login", response_model=TokenResponse)
def login(req: LoginRequest, request: Request, store: RecordStore = Depends(get_store)):
    user = store.find_user(req.username)
    if not user or not verify_password(req.password, user.password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password. Please try again.",
        )

    token = create_access_token({"sub": user.id, "role": user.role})
    store.audit(user.id, "login", client_ip(request))
    return TokenResponse(access_token=token, user=UserPublic.model_validate(user))


@router.get("/me", response_model=MeResponse)
def me(session: SessionContext = Depends(get_session)):
    return MeResponse(user=UserPublic.model_validate(session.user), capabilities=session.capabilities)


@router.put("/profile", response_model=UserPublic)
def update_profile(
    req: ProfileUpdate,
    session: SessionContext = Depends(get_session),
    store: RecordStore = Depends(get_store),
):
    user = store.update_user(session.user.id, {"full_name": req.full_name, "password": req.password})
    store.audit(user.id, "profile_updated", session.ip)
    return UserPublic.model_validate(user)
