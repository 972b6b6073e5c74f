"""
Per-day counter backing the order queue numbers.
"""

from sqlalchemy import Column, Date, Integer
from lineup.extensions import Base


class DailyTokenCounter(Base):
    __tablename__ = "daily_token_counters"

    day = Column(Date, primary_key=True)
    last_token = Column(Integer, nullable=False, default=0)
