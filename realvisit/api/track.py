"""
Tracking endpoint — POST /api/track

Two kinds of payload share the endpoint:
  - Engagement beacons from the storefront tracker (no eventType). Sent ~1s
    after load, every 30s, and on exit. Each one re-classifies the visit
    from scratch and upserts it on (session_id, snapshot_id).
  - Web pixel events (eventType = add_to_cart | conversion) that flag an
    existing visit.

Flow for an engagement beacon:
  1. Find the ACTIVE snapshot for the product handle (none → not tracked)
  2. Snapshot already at its REAL target → complete it, not tracked
  3. Client IP → datacenter check + geo
  4. Normalize signals → verdict + bot score (independent of each other)
  5. Upsert the visit
  6. Re-count REAL visits, complete the snapshot on reaching the target
"""

import datetime
from dataclasses import dataclass

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel
from sqlalchemy import func, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from realvisit.core.bot_score import calculate_bot_score
from realvisit.core.classifier import VisitorType, classify_visitor
from realvisit.core.datacenter import NOT_DATACENTER, DatacenterCheck, is_datacenter_ip
from realvisit.core.geo import lookup_geo
from realvisit.core.linear_movement import TRAIL_CAPACITY, MouseSample
from realvisit.core.signals import INT4_MAX, SignalBundle, build_signal_bundle
from realvisit.core.traffic_source import categorize_source, source_from_referrer
from realvisit.core.user_agent import device_type_from_ua
from realvisit.middleware.rate_limit import get_client_ip, rate_limit_ip
from realvisit.models.database import get_db
from realvisit.models.tables import Project, Snapshot, SnapshotStatus, Visit

import structlog

logger = structlog.get_logger()
router = APIRouter(prefix="/api", tags=["track"])


# --- Request schemas (tracker sends camelCase) ---

SESSION_ID_MAX = 100
HANDLE_MAX = 255

class _TrackerModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class MouseSamplePayload(BaseModel):
    x: float
    y: float
    t: float = 0.0


class EngagementPayload(_TrackerModel):
    # String limits mirror the visit columns; anything longer is a 400
    session_id: str | None = Field(default=None, max_length=SESSION_ID_MAX)
    product_handle: str | None = Field(default=None, max_length=HANDLE_MAX)

    # Traffic source
    source: str | None = Field(default=None, max_length=255)
    medium: str | None = Field(default=None, max_length=255)
    campaign: str | None = Field(default=None, max_length=255)
    referrer: str | None = None
    source_category: str | None = Field(default=None, max_length=50)

    # Engagement metrics
    time_on_page: int | None = None
    scroll_depth: int | None = None
    mouse_movements: int | None = None
    key_presses: int | None = None
    touch_events: int | None = None

    # Behavior + bot signals
    has_mouse_moved: bool | None = None
    has_scrolled: bool | None = None
    has_key_pressed: bool | None = None
    has_touched: bool | None = None
    is_webdriver: bool | None = None
    suspicious_ua: bool | None = Field(default=None, alias="suspiciousUA")
    linear_movement: bool | None = None
    mouse_samples: list[MouseSamplePayload] | None = Field(default=None, max_length=1000)

    # Conversion
    added_to_cart: bool | None = None
    added_to_cart_at: datetime.datetime | None = None

    # Device + lifecycle
    user_agent: str | None = None
    device_type: str | None = Field(default=None, max_length=20)
    exit_type: str | None = Field(default=None, max_length=30)
    started_at: datetime.datetime | None = None
    ended_at: datetime.datetime | None = None


class PixelProduct(_TrackerModel):
    product_handle: str | None = Field(default=None, max_length=HANDLE_MAX)


class PixelEventPayload(_TrackerModel):
    event_type: str = Field(max_length=50)
    session_id: str | None = Field(default=None, max_length=SESSION_ID_MAX)
    timestamp: datetime.datetime | None = None
    product_handle: str | None = Field(default=None, max_length=HANDLE_MAX)
    products: list[PixelProduct] | None = None


# --- Evaluation ---

@dataclass(frozen=True)
class VisitEvaluation:
    signals: SignalBundle
    visitor_type: VisitorType
    bot_score: int
    datacenter: DatacenterCheck


def evaluate_visit(
    payload: EngagementPayload,
    client_ip: str | None,
    user_agent: str | None = None,
) -> VisitEvaluation:
    """Derive server-side signals, then verdict and score from one bundle."""
    datacenter = is_datacenter_ip(client_ip) if client_ip else NOT_DATACENTER

    samples = [
        MouseSample(x=s.x, y=s.y, t=s.t)
        for s in (payload.mouse_samples or [])[-TRAIL_CAPACITY:]
    ]

    signals = build_signal_bundle(
        payload.model_dump(exclude={"mouse_samples"}),
        user_agent=user_agent,
        mouse_samples=samples,
        datacenter_ip=datacenter.is_datacenter,
    )

    return VisitEvaluation(
        signals=signals,
        visitor_type=classify_visitor(signals),
        bot_score=calculate_bot_score(signals),
        datacenter=datacenter,
    )


# --- Store helpers ---

async def _find_active_snapshot(db: AsyncSession, product_handle: str) -> Snapshot | None:
    stmt = (
        select(Snapshot)
        .join(Project, Snapshot.project_id == Project.id)
        .where(
            Project.product_handle == product_handle,
            Snapshot.status == SnapshotStatus.ACTIVE,
        )
        .order_by(Snapshot.number.desc())
        .limit(1)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def _count_real_visits(db: AsyncSession, snapshot_id) -> int:
    stmt = select(func.count(Visit.id)).where(
        Visit.snapshot_id == snapshot_id,
        Visit.visitor_type == VisitorType.REAL,
    )
    result = await db.execute(stmt)
    return result.scalar_one()


async def _find_session_visit(db: AsyncSession, session_id: str, product_handle: str) -> Visit | None:
    """Most recent visit by this session on the given product."""
    stmt = (
        select(Visit)
        .join(Snapshot, Visit.snapshot_id == Snapshot.id)
        .join(Project, Snapshot.project_id == Project.id)
        .where(
            Visit.session_id == session_id,
            Project.product_handle == product_handle,
        )
        .order_by(Visit.started_at.desc())
        .limit(1)
    )
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


def _n(value: int | None) -> int:
    return min(max(value or 0, 0), INT4_MAX)


def _visit_values(
    payload: EngagementPayload,
    evaluation: VisitEvaluation,
) -> dict:
    """Columns refreshed on every beacon."""
    signals = evaluation.signals
    return {
        "visitor_type": evaluation.visitor_type,
        "bot_score": evaluation.bot_score,
        "time_on_page": signals.time_on_page,
        "scroll_depth": signals.scroll_depth,
        "mouse_movements": _n(payload.mouse_movements),
        "key_presses": _n(payload.key_presses),
        "touch_events": _n(payload.touch_events),
        "has_mouse_moved": signals.has_mouse_moved,
        "has_scrolled": signals.has_scrolled,
        "has_key_pressed": signals.has_key_pressed,
        "has_touched": signals.has_touched,
        "is_webdriver": signals.is_webdriver,
        "suspicious_ua": signals.suspicious_ua,
        "linear_movement": signals.linear_movement,
        "datacenter_ip": signals.datacenter_ip,
        "datacenter_provider": evaluation.datacenter.provider,
        "added_to_cart": bool(payload.added_to_cart),
        "added_to_cart_at": payload.added_to_cart_at,
        "exit_type": payload.exit_type,
        "ended_at": payload.ended_at,
    }


async def _complete_snapshot(db: AsyncSession, snapshot: Snapshot, real_count: int) -> None:
    snapshot.mark_completed()
    await db.commit()
    logger.info("snapshot_completed",
                snapshot_id=str(snapshot.id),
                target=snapshot.target_visitors,
                real_count=real_count)


# --- Endpoint ---

@router.post("/track")
async def track(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    rate_limit_ip(request)

    try:
        data = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid request")

    if not isinstance(data, dict):
        raise HTTPException(status_code=400, detail="Invalid request")

    try:
        if data.get("eventType"):
            return await _handle_pixel_event(PixelEventPayload.model_validate(data), db)
        return await _handle_engagement(EngagementPayload.model_validate(data), request, db)
    except ValidationError as e:
        logger.info("track_payload_invalid", errors=e.error_count())
        raise HTTPException(status_code=400, detail="Invalid request")


async def _handle_engagement(payload: EngagementPayload, request: Request, db: AsyncSession) -> dict:
    if not payload.session_id or not payload.product_handle:
        raise HTTPException(status_code=400, detail="Missing required fields")

    snapshot = await _find_active_snapshot(db, payload.product_handle)
    if not snapshot:
        return {"ok": True, "tracked": False}

    real_count = await _count_real_visits(db, snapshot.id)
    if real_count >= snapshot.target_visitors:
        await _complete_snapshot(db, snapshot, real_count)
        return {"ok": True, "tracked": False, "reason": "completed"}

    # --- Server-side signals ---
    client_ip = get_client_ip(request)
    user_agent = payload.user_agent or request.headers.get("user-agent")
    evaluation = evaluate_visit(payload, client_ip, user_agent)
    geo = await lookup_geo(client_ip)

    # --- Upsert (unique on session + snapshot) ---
    update_values = _visit_values(payload, evaluation)
    source = payload.source or source_from_referrer(payload.referrer)[:255]
    insert_values = {
        **update_values,
        "snapshot_id": snapshot.id,
        "session_id": payload.session_id,
        "source": source,
        "medium": payload.medium,
        "campaign": payload.campaign,
        "referrer": payload.referrer,
        "source_category": payload.source_category
        or categorize_source(source, payload.medium, payload.referrer),
        "ip_address": client_ip,
        "country": geo.country,
        "country_code": geo.country_code,
        "city": geo.city,
        "region": geo.region,
        "timezone": geo.timezone,
        "user_agent": user_agent,
        "device_type": payload.device_type or device_type_from_ua(user_agent),
        "started_at": payload.started_at or datetime.datetime.now(datetime.timezone.utc),
    }

    stmt = pg_insert(Visit).values(**insert_values).on_conflict_do_update(
        index_elements=[Visit.session_id, Visit.snapshot_id],
        set_=update_values,
    )
    await db.execute(stmt)

    real_count = await _count_real_visits(db, snapshot.id)
    if real_count >= snapshot.target_visitors:
        await _complete_snapshot(db, snapshot, real_count)
    else:
        await db.commit()

    logger.info("visit_classified",
                session_id=payload.session_id,
                snapshot_id=str(snapshot.id),
                visitor_type=evaluation.visitor_type.value,
                bot_score=evaluation.bot_score,
                datacenter=evaluation.datacenter.provider,
                time_on_page=evaluation.signals.time_on_page)

    return {
        "ok": True,
        "tracked": True,
        "visitorType": evaluation.visitor_type.value,
        "botScore": evaluation.bot_score,
    }


async def _handle_pixel_event(payload: PixelEventPayload, db: AsyncSession) -> dict:
    if not payload.session_id:
        raise HTTPException(status_code=400, detail="Missing sessionId")

    event_at = payload.timestamp or datetime.datetime.now(datetime.timezone.utc)

    if payload.event_type == "add_to_cart":
        if not payload.product_handle:
            return {"ok": True, "tracked": False}

        visit = await _find_session_visit(db, payload.session_id, payload.product_handle)
        if visit:
            visit.added_to_cart = True
            visit.added_to_cart_at = event_at
            await db.commit()

        logger.info("add_to_cart_event",
                    session_id=payload.session_id,
                    product=payload.product_handle,
                    matched=visit is not None)
        return {"ok": True, "tracked": True}

    if payload.event_type == "conversion":
        matched = 0
        for product in payload.products or []:
            if not product.product_handle:
                continue
            visit = await _find_session_visit(db, payload.session_id, product.product_handle)
            if visit:
                visit.converted = True
                visit.converted_at = event_at
                matched += 1

        if matched:
            await db.commit()

        logger.info("conversion_event", session_id=payload.session_id, matched=matched)
        return {"ok": True, "tracked": True}

    return {"ok": True, "tracked": False}
