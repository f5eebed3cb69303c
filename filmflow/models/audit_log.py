"""
Audit Log model

Append-only before/after record of every engine mutation. Write-only from
the engine's point of view; read back only by the audit trail endpoint.
"""
from sqlalchemy import Column, Integer, String, DateTime, JSON, Index
from sqlalchemy.sql import func

from filmflow.core.database import Base
from filmflow.models.mixins import RowMixin


class AuditLog(RowMixin, Base):
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=True)
    action = Column(String(20), nullable=False)  # INSERT, UPDATE, DELETE
    table_name = Column(String(50), nullable=False, default="")
    record_id = Column(Integer, nullable=True)
    old_data = Column(JSON, nullable=True)
    new_data = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("ix_audit_logs_table_record", "table_name", "record_id"),
        Index("ix_audit_logs_created_desc", created_at.desc()),
    )

    def __repr__(self):
        return f"<AuditLog(id={self.id}, action='{self.action}', table='{self.table_name}')>"


class AuditActionType:
    """Audit action names."""
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
