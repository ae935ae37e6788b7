from sqlalchemy import Boolean, Column, DateTime, JSON, PrimaryKeyConstraint, String, Text
from sqlalchemy.orm import declarative_base

from .types import GLOBAL_SETTINGS_ID, utcnow

Base = declarative_base()


class BotSettingsRecord(Base):
    """Single shared settings row (id 'global')"""
    __tablename__ = "bot_settings"

    id = Column(String(50), primary_key=True, default=GLOBAL_SETTINGS_ID)
    active_instance_id = Column(String(50), nullable=True)
    last_rotation_at = Column(DateTime(timezone=True), nullable=True)
    rotation_enabled = Column(Boolean, nullable=False, default=True)
    maintenance_mode = Column(Boolean, nullable=False, default=False)
    maintenance_reason = Column(Text, nullable=False, default="")
    last_maintenance_update = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class InstanceSessionRecord(Base):
    """Durable session credentials for one instance"""
    __tablename__ = "instance_sessions"

    instance_id = Column(String(50), primary_key=True)
    credentials = Column(JSON, nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)


class DocumentRecord(Base):
    """Feature documents (users, tickets, games...) scoped by instance namespace"""
    __tablename__ = "documents"
    __table_args__ = (PrimaryKeyConstraint("namespace", "collection", "doc_id"),)

    namespace = Column(String(100), nullable=False)
    collection = Column(String(100), nullable=False)
    doc_id = Column(String(200), nullable=False)
    data = Column(JSON, nullable=False, default=dict)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
