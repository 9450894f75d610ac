"""Admin authentication and affiliate reporting services."""

from __future__ import annotations

from datetime import datetime, timezone
import math
from typing import Any, Optional

from fastapi import status
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from cashmais.core.errors import ApiError
from cashmais.storage.models import AdminAuditLog, AdminUser, Affiliate, CompanyPurchase
from cashmais.storage.security import verify_password


PENDING_COMMISSION_RATE = 0.70


def authenticate_admin(session: Session, *, username: str, password: str) -> AdminUser:
    admin = session.scalar(
        select(AdminUser).where(AdminUser.username == username, AdminUser.is_active.is_(True))
    )
    if admin is None or not verify_password(password, admin.password_hash):
        raise ApiError(status.HTTP_401_UNAUTHORIZED, "Invalid credentials")
    return admin


def record_admin_login(
    session: Session,
    admin: AdminUser,
    *,
    ip_address: str,
    user_agent: str,
    now: Optional[datetime] = None,
) -> None:
    admin.last_login_at = now or datetime.now(timezone.utc)
    session.add(
        AdminAuditLog(
            admin_user_id=admin.id,
            action="LOGIN",
            entity_type="admin_session",
            ip_address=ip_address,
            user_agent=user_agent,
        )
    )
    session.commit()


def list_affiliates(
    session: Session,
    *,
    page: int = 1,
    limit: int = 20,
    search: str = "",
) -> dict[str, Any]:
    """Page through affiliates, enriched with referral and cashback totals."""

    filters = []
    term = search.strip()
    if term:
        pattern = f"%{term}%"
        filters.append(
            or_(
                Affiliate.full_name.ilike(pattern),
                Affiliate.email.ilike(pattern),
                Affiliate.cpf.ilike(pattern),
            )
        )

    total = int(session.scalar(select(func.count()).select_from(Affiliate).where(*filters)) or 0)
    affiliates = list(
        session.scalars(
            select(Affiliate)
            .where(*filters)
            .order_by(Affiliate.created_at.desc(), Affiliate.id)
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()
    )

    ids = [affiliate.id for affiliate in affiliates]
    cpfs = [affiliate.cpf for affiliate in affiliates if affiliate.cpf]

    referrals: dict[str, int] = {}
    if ids:
        referral_rows = session.execute(
            select(Affiliate.sponsor_id, func.count(Affiliate.id))
            .where(Affiliate.sponsor_id.in_(ids))
            .group_by(Affiliate.sponsor_id)
        ).all()
        referrals = {sponsor_id: int(count) for sponsor_id, count in referral_rows}

    cashback: dict[str, float] = {}
    if cpfs:
        cashback_rows = session.execute(
            select(CompanyPurchase.customer_coupon, func.coalesce(func.sum(CompanyPurchase.cashback_generated), 0))
            .where(CompanyPurchase.customer_coupon.in_(cpfs))
            .group_by(CompanyPurchase.customer_coupon)
        ).all()
        cashback = {coupon: float(amount or 0) for coupon, amount in cashback_rows}

    items = []
    for affiliate in affiliates:
        total_cashback = cashback.get(affiliate.cpf, 0.0)
        items.append(
            {
                "id": affiliate.id,
                "full_name": affiliate.full_name,
                "email": affiliate.email,
                "cpf": affiliate.cpf,
                "whatsapp": affiliate.whatsapp,
                "referral_code": affiliate.referral_code,
                "sponsor_id": affiliate.sponsor_id,
                "is_active": bool(affiliate.is_active),
                "is_verified": bool(affiliate.is_verified),
                "created_at": affiliate.created_at,
                "last_access_at": affiliate.last_access_at,
                "direct_referrals": referrals.get(affiliate.id, 0),
                "total_cashback": total_cashback,
                "pending_commissions": total_cashback * PENDING_COMMISSION_RATE,
            }
        )

    return {
        "affiliates": items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "totalPages": math.ceil(total / limit) if limit else 0,
        },
    }


def month_bounds(now: datetime) -> tuple[datetime, datetime]:
    start = datetime(now.year, now.month, 1, tzinfo=timezone.utc)
    if now.month == 12:
        end = datetime(now.year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(now.year, now.month + 1, 1, tzinfo=timezone.utc)
    return start, end


def affiliate_stats(session: Session, *, now: Optional[datetime] = None) -> dict[str, Any]:
    now = now or datetime.now(timezone.utc)
    month_start, next_month_start = month_bounds(now)

    def _count(*conditions) -> int:
        return int(session.scalar(select(func.count()).select_from(Affiliate).where(*conditions)) or 0)

    total_cashback = float(
        session.scalar(select(func.coalesce(func.sum(CompanyPurchase.cashback_generated), 0))) or 0
    )

    return {
        "totalActive": _count(Affiliate.is_active.is_(True)),
        "totalInactive": _count(Affiliate.is_active.is_(False)),
        "totalCashbackGenerated": total_cashback,
        "totalCommissionsPending": total_cashback * PENDING_COMMISSION_RATE,
        "newAffiliatesThisMonth": _count(
            Affiliate.created_at >= month_start,
            Affiliate.created_at < next_month_start,
        ),
    }
