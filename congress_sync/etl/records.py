"""
Canonical in-memory records produced by the format adapters.

Adapters turn each source's JSON or XML into these; the repository only
ever sees these types.
"""

from dataclasses import dataclass, field, asdict
from datetime import date
from typing import List, Optional


@dataclass
class BillRef:
    bill_type: str
    bill_number: int
    congress: Optional[int] = None


@dataclass
class MemberRecord:
    bioguide_id: str
    first_name: str
    last_name: str
    party: str
    state_code: str
    chamber: str
    district: Optional[str] = None
    current_term_start: Optional[date] = None
    website_url: Optional[str] = None
    lis_id: Optional[str] = None
    thomas_id: Optional[str] = None
    govtrack_id: Optional[int] = None
    fec_id: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class BillRecord:
    """Identity and latest action, as returned by the bill list endpoint."""
    congress: int
    bill_type: str
    bill_number: int
    title: Optional[str] = None
    latest_action: Optional[str] = None
    latest_action_date: Optional[date] = None


@dataclass
class BillEnrichment:
    """Fields only available from the per-bill detail, summaries and subjects endpoints."""
    introduced_date: Optional[date] = None
    sponsor_bioguide_id: Optional[str] = None
    policy_area: Optional[str] = None
    summary: Optional[str] = None
    full_text_url: Optional[str] = None
    subjects: List[str] = field(default_factory=list)


@dataclass
class VoteTotals:
    yea: int = 0
    nay: int = 0
    present: int = 0
    not_voting: int = 0


@dataclass
class MemberVote:
    position: str
    bioguide_id: Optional[str] = None
    lis_id: Optional[str] = None
    name: str = ''
    first_name: str = ''
    last_name: str = ''
    party: str = ''
    state: str = ''

    @property
    def source_id(self) -> str:
        return self.bioguide_id or self.lis_id or self.name


@dataclass
class RollCallRecord:
    congress: int
    chamber: str
    session: int
    roll_call_number: int
    vote_date: date
    vote_question: str = ''
    vote_result: str = ''
    totals: VoteTotals = field(default_factory=VoteTotals)
    member_votes: List[MemberVote] = field(default_factory=list)
    bill: Optional[BillRef] = None
    source_url: Optional[str] = None


@dataclass
class HouseVoteStub:
    """One entry of the paginated /house-vote list."""
    congress: int
    session: int
    roll_call_number: int
    year: Optional[int] = None
    source_url: Optional[str] = None


@dataclass
class DistrictResult:
    state_code: str
    district_number: str
    source: str = 'cache'


@dataclass
class VoteWriteResult:
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    errors: int = 0
    missing_ids: List[str] = field(default_factory=list)


@dataclass
class SyncResult:
    """Per-run summary reported to the operator."""
    inserted: int = 0
    updated: int = 0
    errors: int = 0
    skipped: int = 0
    roll_calls_processed: int = 0
    has_more: bool = False
    next_offset: Optional[int] = None
    next_session: Optional[int] = None
    next_roll_call: Optional[int] = None
    skipped_sync: bool = False

    def add_votes(self, result: VoteWriteResult):
        self.inserted += result.inserted
        self.updated += result.updated
        self.skipped += result.skipped
        self.errors += result.errors

    def merge(self, other: 'SyncResult'):
        self.inserted += other.inserted
        self.updated += other.updated
        self.errors += other.errors
        self.skipped += other.skipped
        self.roll_calls_processed += other.roll_calls_processed

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class BackfillResult:
    updated: int = 0
    errors: int = 0

    def to_dict(self) -> dict:
        return asdict(self)
