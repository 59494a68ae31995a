"""Tenant-scoped DB context helpers."""

from __future__ import annotations

from typing import Optional

from sqlalchemy import event, text
from sqlalchemy.engine import Connection
from sqlalchemy.orm import Session, SessionTransaction


TENANT_INFO_KEY = "tenant_id"
_SET_TENANT_SQL = text("SELECT set_config('app.current_tenant_id', :tenant_id, true)")


def _apply(connection: Connection, tenant_id: Optional[str]) -> None:
    if connection.dialect.name != "postgresql":
        return
    connection.execute(_SET_TENANT_SQL, {"tenant_id": tenant_id or ""})


@event.listens_for(Session, "after_begin")
def _restore_tenant_context(session: Session, transaction: SessionTransaction, connection: Connection) -> None:
    """set_config(..., true) is transaction-local; re-apply it whenever a new transaction begins."""

    del transaction
    tenant_id = session.info.get(TENANT_INFO_KEY)
    if tenant_id:
        _apply(connection, tenant_id)


def current_tenant_id(session: Session) -> Optional[str]:
    return session.info.get(TENANT_INFO_KEY)


def set_tenant_context(session: Session, tenant_id: Optional[str]) -> None:
    """Set tenant context for PostgreSQL RLS policies, for this and every later transaction."""

    if tenant_id:
        session.info[TENANT_INFO_KEY] = tenant_id
    else:
        session.info.pop(TENANT_INFO_KEY, None)

    bind = session.get_bind()
    if bind is None or bind.dialect.name != "postgresql":
        return
    session.execute(_SET_TENANT_SQL, {"tenant_id": tenant_id or ""})


def reset_tenant_context(session: Session) -> None:
    set_tenant_context(session=session, tenant_id=None)
