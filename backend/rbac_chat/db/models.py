from sqlalchemy import Column, DateTime, Integer, String, Text
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class SessionRecord(Base):
    __tablename__ = "sessions"

    id = Column(String(64), primary_key=True)
    draft = Column(Text, nullable=False, default="{}")
    policy = Column(Text, nullable=False, default="{}")
    conversation = Column(Text, nullable=False, default="[]")
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class AuditEntry(Base):
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True)
    session_id = Column(String(64), nullable=False, index=True)
    action = Column(String(32), nullable=False)  # POLICY_UPDATE | SYSTEM_RESET
    details = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
