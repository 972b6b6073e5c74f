"""
Daily queue numbers for orders.

Tokens restart at 1 on each calendar day. The day's counter row is advanced
with a single ``UPDATE ... SET last_token = last_token + 1`` inside the
order's transaction, so two orders can never be handed the same number.
"""

from datetime import date, datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from flask import current_app
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from lineup.Database.daily_token import DailyTokenCounter
from lineup.Database.order import Order
from lineup.utils.helpers.clock import as_utc


def local_day(now: Optional[datetime] = None, tz_name: Optional[str] = None) -> date:
    """Calendar day of ``now`` (naive UTC or aware) in the token time zone."""
    if tz_name is None:
        tz_name = current_app.config.get("TOKEN_TIMEZONE")
    moment = as_utc(now).replace(tzinfo=timezone.utc)
    if tz_name:
        return moment.astimezone(ZoneInfo(tz_name)).date()
    return moment.astimezone().date()


def _seed_counter(session, day: date):
    highest = session.execute(
        select(func.max(Order.token_id)).where(Order.token_date == day)
    ).scalar()
    try:
        with session.begin_nested():
            session.add(DailyTokenCounter(day=day, last_token=highest or 0))
    except IntegrityError:
        # another transaction created today's row first
        current_app.logger.info(f"Token counter for {day} already seeded")


def next_token(session, now: Optional[datetime] = None) -> int:
    day = local_day(now)

    if session.get(DailyTokenCounter, day) is None:
        _seed_counter(session, day)

    session.execute(
        update(DailyTokenCounter)
        .where(DailyTokenCounter.day == day)
        .values(last_token=DailyTokenCounter.last_token + 1)
        .execution_options(synchronize_session=False)
    )
    return session.execute(
        select(DailyTokenCounter.last_token).where(DailyTokenCounter.day == day)
    ).scalar_one()
