from sqlalchemy import Column, Integer, BigInteger, String, Boolean, Text, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
import time
import uuid

from .database import Base


def new_id() -> str:
    return str(uuid.uuid4())


def now_ms() -> int:
    return int(time.time() * 1000)


class User(Base):
    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    username = Column(String(150), unique=True, index=True, nullable=False)
    password = Column(String(255), nullable=False)  # texto plano, ver DESIGN.md
    full_name = Column(String(255), nullable=False)
    role = Column(String(50), nullable=False, default="user")  # admin | user | mamdhoob
    email = Column(String(255), nullable=True)

    logs = relationship("AuditLog", back_populates="user")


class Voter(Base):
    __tablename__ = "voters"

    id = Column(String(36), primary_key=True, default=new_id)
    id_card_number = Column(String(50), nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    gender = Column(String(10), nullable=True)
    address = Column(Text, nullable=False, default="")
    island = Column(String(150), nullable=False)
    phone_number = Column(String(50), nullable=True)
    has_voted = Column(Boolean, nullable=False, default=False)
    registrar_party = Column(String(150), nullable=True)
    sheema = Column(Boolean, nullable=False, default=False)
    sadiq = Column(Boolean, nullable=False, default=False)
    communicated = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)
    created_at = Column(BigInteger, nullable=False, default=now_ms)
    updated_at = Column(BigInteger, nullable=False, default=now_ms, onupdate=now_ms)


class Island(Base):
    __tablename__ = "islands"

    name = Column(String(150), primary_key=True)


class Party(Base):
    __tablename__ = "parties"

    name = Column(String(150), primary_key=True)


class ElectionSetting(Base):
    __tablename__ = "settings"

    id = Column(Integer, primary_key=True, default=1)
    election_start = Column(BigInteger, nullable=False, default=0)
    election_end = Column(BigInteger, nullable=False, default=0)


class Message(Base):
    __tablename__ = "messages"

    id = Column(String(36), primary_key=True, default=new_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    user_name = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(BigInteger, nullable=False, default=now_ms, index=True)


class Task(Base):
    __tablename__ = "tasks"

    id = Column(String(36), primary_key=True, default=new_id)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    assigned_to_user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    assigned_by_user_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    status = Column(String(20), nullable=False, default="pending")  # pending | completed
    created_at = Column(BigInteger, nullable=False, default=now_ms)


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(100), nullable=False)
    ip = Column(String(100), nullable=True)
    timestamp = Column(DateTime, default=datetime.utcnow)

    user = relationship("User", back_populates="logs")
