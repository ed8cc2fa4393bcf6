# models.py
from datetime import datetime, timezone

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Index, Integer, String, Text

from rewardbot.database.db import Base

PENDING = "pending"
APPROVED = "approved"
REJECTED = "rejected"

RESERVED = "reserved"
COMPLETED = "completed"
RELEASED = "released"


def utcnow():
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    id = Column(BigInteger, primary_key=True, autoincrement=False)
    balance = Column(BigInteger, nullable=False, default=0)    # minor units
    reserved = Column(BigInteger, nullable=False, default=0)   # locked by an in-flight withdrawal
    wallet_address = Column(String(128))
    referral_count = Column(Integer, nullable=False, default=0)
    device_fingerprint = Column(String(64), index=True)
    verified_at = Column(DateTime(timezone=True))
    banned = Column(Boolean, nullable=False, default=False)
    bonus_claimed = Column(Boolean, nullable=False, default=False)
    referred_by = Column(BigInteger)
    pending_referrer = Column(String(32))
    pending_token = Column(String(64), unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    @property
    def available(self) -> int:
        return self.balance - self.reserved


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True)
    description = Column(Text, nullable=False)
    reward = Column(BigInteger, nullable=False)   # minor units


class Submission(Base):
    __tablename__ = "submissions"

    id = Column(Integer, primary_key=True)
    user_id = Column(BigInteger, nullable=False, index=True)
    task_id = Column(Integer, nullable=False)
    proof_ref = Column(String(256), nullable=False)
    status = Column(String(16), nullable=False, default=PENDING)   # 'pending', 'approved', 'rejected'
    processed_by = Column(BigInteger)
    processed_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)


class Withdrawal(Base):
    __tablename__ = "withdrawals"

    id = Column(Integer, primary_key=True)
    user_id = Column(BigInteger, nullable=False)
    amount = Column(BigInteger, nullable=False)
    wallet_address = Column(String(128), nullable=False)
    status = Column(String(16), nullable=False, default=RESERVED)  # 'reserved', 'completed', 'released'
    tx_id = Column(String(256))
    error = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    finished_at = Column(DateTime(timezone=True))

    __table_args__ = (Index("ix_withdrawals_user_status", "user_id", "status"),)
