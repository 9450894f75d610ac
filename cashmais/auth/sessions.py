"""Session resolution and lifecycle, shared by every realm."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from cashmais.auth.realms import Realm
from cashmais.core.errors import SessionStoreError
from cashmais.core.logger import get_logger, mask_token
from cashmais.core.metrics import record_session_resolution
from cashmais.storage.security import generate_session_token


logger = get_logger("cashmais.auth.sessions")


@dataclass(frozen=True)
class ResolvedSession:
    realm: str
    session: Any
    principal: Any

    @property
    def token(self) -> str:
        return self.session.session_token

    @property
    def principal_id(self) -> str:
        return self.principal.id


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def resolve_session(
    db: Session,
    realm: Realm,
    token: str,
    *,
    now: Optional[datetime] = None,
) -> Optional[ResolvedSession]:
    """Look up an unexpired session whose principal is active.

    One SELECT joining the realm's session table to its principal table,
    and to the principal's owner when the realm names one.
    Returns None when nothing matches; raises SessionStoreError when the
    store itself fails.
    """

    if not token:
        record_session_resolution(realm=realm.name, outcome="missing_token")
        return None

    now = now or _utcnow()
    session_model = realm.session_model
    principal_model = realm.principal_model
    stmt = (
        select(session_model, principal_model)
        .join(principal_model, realm.principal_column == principal_model.id)
        .where(
            session_model.session_token == token,
            session_model.expires_at > now,
            principal_model.is_active.is_(True),
        )
    )
    if realm.parent_model is not None:
        parent_model = realm.parent_model
        stmt = stmt.join(parent_model, realm.parent_column == parent_model.id).where(
            parent_model.is_active.is_(True)
        )
    stmt = stmt.limit(1)

    try:
        row = db.execute(stmt).first()
    except SQLAlchemyError as exc:
        record_session_resolution(realm=realm.name, outcome="store_error")
        logger.error("session_lookup_failed", realm=realm.name, error=str(exc))
        raise SessionStoreError(str(exc)) from exc

    if row is None:
        record_session_resolution(realm=realm.name, outcome="not_found")
        logger.info("session_not_found", realm=realm.name, token=mask_token(token))
        return None

    record_session_resolution(realm=realm.name, outcome="resolved")
    return ResolvedSession(realm=realm.name, session=row[0], principal=row[1])


def create_session(
    db: Session,
    realm: Realm,
    principal_id: str,
    *,
    now: Optional[datetime] = None,
    ip_address: Optional[str] = None,
    user_agent: Optional[str] = None,
) -> Any:
    """Issue a new session for a principal. Commits."""

    now = now or _utcnow()
    session_model = realm.session_model

    if realm.replace_existing_sessions:
        db.execute(delete(session_model).where(realm.principal_column == principal_id))

    row = session_model(session_token=generate_session_token(), expires_at=now + realm.ttl)
    setattr(row, realm.principal_key, principal_id)
    if hasattr(session_model, "ip_address"):
        row.ip_address = ip_address or "unknown"
    if hasattr(session_model, "user_agent"):
        row.user_agent = user_agent or "unknown"

    db.add(row)
    db.commit()
    logger.info(
        "session_created",
        realm=realm.name,
        principal_id=principal_id,
        token=mask_token(row.session_token),
        expires_at=row.expires_at.isoformat(),
    )
    return row


def revoke_session(db: Session, realm: Realm, token: str) -> bool:
    if not token:
        return False
    session_model = realm.session_model
    result = db.execute(delete(session_model).where(session_model.session_token == token))
    db.commit()
    return bool(result.rowcount)


def purge_expired_sessions(db: Session, realm: Realm, *, now: Optional[datetime] = None) -> int:
    now = now or _utcnow()
    session_model = realm.session_model
    result = db.execute(delete(session_model).where(session_model.expires_at <= now))
    db.commit()
    removed = int(result.rowcount or 0)
    if removed:
        logger.info("expired_sessions_purged", realm=realm.name, removed=removed)
    return removed
