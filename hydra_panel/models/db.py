from sqlalchemy import (
    Column, String, Integer, DateTime, Text
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class KeyValueDB(Base):
    __tablename__ = "kv_store"

    key = Column(String, primary_key=True)
    value = Column(Text, nullable=False)  # JSON document
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class AuditLogDB(Base):
    __tablename__ = "audit_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(String, nullable=False, index=True)
    username = Column(String, nullable=True)
    action = Column(String, nullable=False)  # e.g. instance:rename
    ip = Column(String, nullable=True)
    details = Column(Text, nullable=True)  # JSON document
    created_at = Column(DateTime(timezone=True), server_default=func.now())
