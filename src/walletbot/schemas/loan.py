# This project was developed with assistance from AI tools.
"""Loan aggregate and loan API schemas."""

from datetime import UTC, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from ..enums import LoanStatus, Region
from . import Pagination


def _utcnow() -> datetime:
    return datetime.now(UTC)


def format_loan_id(sequence: int) -> str:
    """Render a ledger sequence number as a loan ID (``L0001``)."""
    return f"L{sequence:04d}"


def normalize_identity(identity: str) -> str:
    """Trimmed, case-folded form used to compare actor identities."""
    return identity.strip().casefold()


class Recommendation(BaseModel):
    """One endorsement of an applicant."""

    recommender: str
    reason: str = ""
    created_at: datetime = Field(default_factory=_utcnow)


class Loan(BaseModel):
    """Loan aggregate owned by the ledger.

    ``approved_limit``, ``term_months`` and ``status`` are derived from the
    approval and recommendation facts by ``services.underwriting`` and are
    only written through ``apply_underwriting``.
    """

    id: str
    applicant_name: str
    applicant_id: str
    region: Region
    requested_amount: Decimal
    status: LoanStatus = LoanStatus.PENDING
    mufundisi_approved: bool = False
    mufundisi_approver: str | None = None
    elder_approvals: set[str] = Field(default_factory=set)
    recommendations: list[Recommendation] = Field(default_factory=list)
    approved_limit: Decimal = Decimal("0")
    term_months: int = 0
    borrowed: Decimal = Decimal("0")
    declined: bool = False
    decline_reason: str | None = None
    declined_by: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)

    @property
    def available(self) -> Decimal:
        """Credit still available to borrow."""
        return self.approved_limit - self.borrowed

    def has_recommendation_from(self, identity: str) -> bool:
        key = normalize_identity(identity)
        return any(normalize_identity(r.recommender) == key for r in self.recommendations)


class RecommendResult(BaseModel):
    loan: Loan
    already_recommended: bool = False


class BorrowResult(BaseModel):
    loan: Loan
    amount: Decimal


class LoanItem(BaseModel):
    """Public projection of a loan for the REST API."""

    id: str
    applicant_name: str
    region: Region
    requested_amount: Decimal
    status: LoanStatus
    approved_limit: Decimal
    term_months: int
    borrowed: Decimal
    mufundisi_approved: bool
    elder_approval_count: int
    recommendation_count: int
    decline_reason: str | None = None
    created_at: datetime

    @classmethod
    def from_loan(cls, loan: Loan) -> "LoanItem":
        return cls(
            id=loan.id,
            applicant_name=loan.applicant_name,
            region=loan.region,
            requested_amount=loan.requested_amount,
            status=loan.status,
            approved_limit=loan.approved_limit,
            term_months=loan.term_months,
            borrowed=loan.borrowed,
            mufundisi_approved=loan.mufundisi_approved,
            elder_approval_count=len(loan.elder_approvals),
            recommendation_count=len(loan.recommendations),
            decline_reason=loan.decline_reason,
            created_at=loan.created_at,
        )


class LoanResponse(BaseModel):
    data: LoanItem


class LoanListResponse(BaseModel):
    data: list[LoanItem]
    pagination: Pagination
