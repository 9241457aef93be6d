from sqlalchemy.orm import Session

from restaurant_loyalty.clock import utcnow
from restaurant_loyalty.db import not_deleted
from restaurant_loyalty.models.loyalty_point import EARN_TYPES, EXPIRED, REDEEMED, LoyaltyPoint
from restaurant_loyalty.models.restaurant import Restaurant


GENERAL_RESTAURANT_NAME = "General"
RECENT_TRANSACTIONS_LIMIT = 5


# ============================================================
# Repository helpers
# ============================================================
def restaurant_names(db: Session, restaurant_ids) -> dict:
    ids = {rid for rid in restaurant_ids if rid is not None}
    if not ids:
        return {}
    rows = db.query(Restaurant.id, Restaurant.name).filter(Restaurant.id.in_(ids)).all()
    return {rid: name for rid, name in rows}


def restaurant_name(db: Session, restaurant_id) -> str:
    if restaurant_id is None:
        return GENERAL_RESTAURANT_NAME
    return restaurant_names(db, [restaurant_id]).get(restaurant_id, GENERAL_RESTAURANT_NAME)


def _entries_query(db: Session, customer_id: str, restaurant_id=None, *, all_restaurants: bool = False):
    q = not_deleted(db.query(LoyaltyPoint), LoyaltyPoint).filter(LoyaltyPoint.customer_id == customer_id)
    if all_restaurants:
        return q
    if restaurant_id is None:
        return q.filter(LoyaltyPoint.restaurant_id.is_(None))
    return q.filter(LoyaltyPoint.restaurant_id == restaurant_id)


def append_entry(
    db: Session,
    *,
    customer_id: str,
    restaurant_id,
    points: int,
    type: str,
    description: str | None = None,
    expiry_date=None,
    order_id: str | None = None,
    is_redeemed: bool = False,
    at=None,
) -> LoyaltyPoint:
    at = at or utcnow()
    entry = LoyaltyPoint(
        customer_id=customer_id,
        restaurant_id=restaurant_id,
        points=points,
        type=type,
        description=description,
        order_id=order_id,
        earned_at=at,
        expiry_date=expiry_date,
        is_redeemed=is_redeemed,
        redeemed_at=at if is_redeemed else None,
    )
    db.add(entry)
    db.flush()
    return entry


def lock_ledger(db: Session, customer_id: str, restaurant_id) -> None:
    """Lock the customer's ledger rows for one restaurant until commit.

    Concurrent debits for the same balance queue up here, so the balance read
    afterwards includes every committed debit.
    """
    (
        _entries_query(db, customer_id, restaurant_id)
        .with_entities(LoyaltyPoint.id)
        .with_for_update()
        .all()
    )


# ============================================================
# Aggregation
# ============================================================
def _is_earn(entry: LoyaltyPoint) -> bool:
    return entry.type in EARN_TYPES and entry.points > 0


def _lapsed(entry: LoyaltyPoint, at) -> bool:
    return entry.expiry_date is not None and entry.expiry_date < at


def _spend_order(entry: LoyaltyPoint):
    # soonest expiry first, open-ended batches last
    return (entry.expiry_date is None, entry.expiry_date or entry.earned_at, entry.earned_at)


def allocate(entries, now) -> tuple[dict, list]:
    """Match debits against the earn batches they spent.

    Each REDEEMED or EXPIRED entry consumes earn batches that were live at
    its own timestamp, soonest-expiring first, and only falls back to other
    batches when those run dry. A lapsed batch then only counts as expired
    for whatever is left of it, so spent points are never subtracted twice.

    Returns the balance figures and a list of ``[batch, remaining]`` pairs.
    """
    batches = [[e, e.points] for e in sorted((e for e in entries if _is_earn(e)), key=_spend_order)]
    debits = sorted(
        (e for e in entries if e.type in (REDEEMED, EXPIRED)),
        key=lambda e: e.earned_at,
    )

    total = sum(e.points for e, _ in batches)
    redeemed = 0
    written_off = 0

    for debit in debits:
        amount = abs(debit.points)
        at = debit.earned_at
        if debit.type == REDEEMED:
            redeemed += amount
            preferred = [b for b in batches if b[0].earned_at <= at and not _lapsed(b[0], at)]
        else:
            written_off += amount
            preferred = [b for b in batches if _lapsed(b[0], at)]
        picked = {id(b) for b in preferred}
        rest = [b for b in batches if id(b) not in picked]

        for batch in preferred + rest:
            if amount <= 0:
                break
            take = min(amount, batch[1])
            batch[1] -= take
            amount -= take

    expired = written_off + sum(left for e, left in batches if _lapsed(e, now))
    return summarize(total, redeemed, expired), batches


def summarize(total, redeemed, expired) -> dict:
    total = int(total or 0)
    redeemed = int(redeemed or 0)
    expired = int(expired or 0)
    return {
        "total_points": total,
        "redeemed_points": redeemed,
        "expired_points": expired,
        # a consistent ledger never goes below zero; clamp in case it does
        "available_points": max(0, total - expired - redeemed),
    }


def get_available_points(db: Session, customer_id: str, restaurant_id, *, now=None) -> int:
    now = now or utcnow()
    entries = _entries_query(db, customer_id, restaurant_id).all()
    return allocate(entries, now)[0]["available_points"]


def mark_spent_batches(db: Session, customer_id: str, restaurant_id, *, at=None) -> int:
    """Flag earn entries whose points have been fully spent as redeemed."""
    at = at or utcnow()
    entries = _entries_query(db, customer_id, restaurant_id).all()
    _, batches = allocate(entries, at)

    flagged = 0
    for entry, left in batches:
        if left == 0 and not entry.is_redeemed:
            entry.is_redeemed = True
            entry.redeemed_at = at
            flagged += 1
    if flagged:
        db.flush()
    return flagged


def serialize_entry(entry: LoyaltyPoint, name: str) -> dict:
    return {
        "id": entry.id,
        "customer_id": entry.customer_id,
        "restaurant_id": entry.restaurant_id,
        "restaurant_name": name,
        "points": entry.points,
        "type": entry.type,
        "description": entry.description,
        "order_id": entry.order_id,
        "earned_at": entry.earned_at,
        "expiry_date": entry.expiry_date,
        "is_redeemed": entry.is_redeemed,
        "redeemed_at": entry.redeemed_at,
    }


def get_customer_loyalty_balance(db: Session, customer_id: str) -> list[dict]:
    now = utcnow()

    entries = (
        _entries_query(db, customer_id, all_restaurants=True)
        .order_by(LoyaltyPoint.earned_at.desc())
        .all()
    )

    grouped = {}
    for entry in entries:
        grouped.setdefault(entry.restaurant_id, []).append(entry)

    names = restaurant_names(db, grouped.keys())

    balances = []
    for restaurant_id, group in grouped.items():
        name = names.get(restaurant_id, GENERAL_RESTAURANT_NAME)
        figures, _ = allocate(group, now)
        balances.append(
            {
                "customer_id": customer_id,
                "restaurant_id": restaurant_id,
                "restaurant_name": name,
                **figures,
                "recent_transactions": [serialize_entry(e, name) for e in group[:RECENT_TRANSACTIONS_LIMIT]],
            }
        )

    balances.sort(key=lambda b: (b["restaurant_id"] is None, b["restaurant_name"].lower()))
    return balances


def get_customer_point_history(db: Session, customer_id: str, restaurant_id=None) -> list[dict]:
    q = _entries_query(db, customer_id, restaurant_id, all_restaurants=restaurant_id is None)
    entries = q.order_by(LoyaltyPoint.earned_at.desc()).all()

    names = restaurant_names(db, [e.restaurant_id for e in entries])
    return [
        serialize_entry(e, names.get(e.restaurant_id, GENERAL_RESTAURANT_NAME))
        for e in entries
    ]
