"""
Relational schema for synchronized congressional data.

Table and column names are read directly by the API layer; keep them stable.
"""

from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Date, DateTime, Boolean, Text, ForeignKey,
    UniqueConstraint, Index
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

VOTE_POSITIONS = ('Yea', 'Nay', 'Present', 'Not Voting')
PARTIES = ('Republican', 'Democrat', 'Independent')


class Member(Base):
    __tablename__ = 'members'

    id = Column(Integer, primary_key=True, autoincrement=True)
    bioguide_id = Column(String(20), nullable=False, unique=True)
    lis_id = Column(String(20))
    thomas_id = Column(String(20))
    govtrack_id = Column(Integer)
    fec_id = Column(String(20))
    first_name = Column(String(100))
    last_name = Column(String(100))
    full_name = Column(String(200))
    party = Column(String(20), nullable=False)
    state_code = Column(String(2), nullable=False)
    chamber = Column(String(10), nullable=False)  # 'house', 'senate'
    district = Column(String(3))  # 'AL' for at-large, NULL for senators
    current_term_start = Column(Date)
    website_url = Column(String(500))
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        Index('idx_members_lis_id', 'lis_id'),
        Index('idx_members_state_chamber', 'state_code', 'chamber'),
    )


class PolicyArea(Base):
    __tablename__ = 'policy_areas'

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False, unique=True)
    created_at = Column(DateTime, default=datetime.utcnow)


class Bill(Base):
    __tablename__ = 'bills'

    id = Column(Integer, primary_key=True, autoincrement=True)
    congress = Column(Integer, nullable=False)
    bill_type = Column(String(10), nullable=False)  # 'hr', 's', 'hjres', 'sjres', etc.
    bill_number = Column(Integer, nullable=False)
    title = Column(Text)
    summary = Column(Text)
    sponsor_id = Column(Integer, ForeignKey('members.id'))
    introduced_date = Column(Date)
    full_text_url = Column(String(500))
    primary_policy_area_id = Column(Integer, ForeignKey('policy_areas.id'))
    latest_action = Column(Text)
    latest_action_date = Column(Date)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('congress', 'bill_type', 'bill_number', name='uq_bills_natural_key'),
        Index('idx_bills_sponsor', 'sponsor_id'),
    )


class BillSubject(Base):
    __tablename__ = 'bill_subjects'

    id = Column(Integer, primary_key=True, autoincrement=True)
    bill_id = Column(Integer, ForeignKey('bills.id'), nullable=False)
    subject = Column(String(200), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('bill_id', 'subject', name='uq_bill_subjects'),
    )


class RollCall(Base):
    __tablename__ = 'roll_calls'

    id = Column(Integer, primary_key=True, autoincrement=True)
    congress = Column(Integer, nullable=False)
    chamber = Column(String(10), nullable=False)  # 'house', 'senate'
    session = Column(Integer, nullable=False)
    roll_call_number = Column(Integer, nullable=False)
    bill_id = Column(Integer, ForeignKey('bills.id'))
    vote_date = Column(Date, nullable=False)
    vote_question = Column(Text)
    vote_result = Column(String(200))
    yea_total = Column(Integer)
    nay_total = Column(Integer)
    present_total = Column(Integer)
    not_voting_total = Column(Integer)
    # Party breakdown snapshot, NULL until computed
    republican_yea = Column(Integer)
    republican_nay = Column(Integer)
    democrat_yea = Column(Integer)
    democrat_nay = Column(Integer)
    source_url = Column(String(500))
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('congress', 'chamber', 'session', 'roll_call_number', name='uq_roll_calls_natural_key'),
        Index('idx_roll_calls_date', 'vote_date'),
        Index('idx_roll_calls_bill', 'bill_id'),
    )


class Vote(Base):
    __tablename__ = 'votes'

    id = Column(Integer, primary_key=True, autoincrement=True)
    member_id = Column(Integer, ForeignKey('members.id'), nullable=False)
    roll_call_id = Column(Integer, ForeignKey('roll_calls.id'), nullable=False)
    # One of VOTE_POSITIONS, or the literal clerk text for special votes (e.g. Speaker elections)
    position = Column(String(100), nullable=False)
    vote_date = Column(Date)
    bill_id = Column(Integer, ForeignKey('bills.id'))
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('member_id', 'roll_call_id', name='uq_votes_member_roll_call'),
        Index('idx_votes_roll_call', 'roll_call_id'),
    )


class ZipDistrict(Base):
    __tablename__ = 'zip_districts'

    id = Column(Integer, primary_key=True, autoincrement=True)
    zip_code = Column(String(5), nullable=False)
    state_code = Column(String(2), nullable=False)
    district_number = Column(String(3), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint('zip_code', 'state_code', 'district_number', name='uq_zip_districts'),
        Index('idx_zip_districts_zip', 'zip_code'),
    )


class SyncMetadata(Base):
    __tablename__ = 'sync_metadata'

    entity = Column(String(50), primary_key=True)
    last_sync_at = Column(DateTime, nullable=False)
