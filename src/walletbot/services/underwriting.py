# This project was developed with assistance from AI tools.
"""Credit limit and term derivation.

Pure math, no I/O. The ledger runs it after every mutating event and
writes the result back with ``apply_underwriting``; limits are never
patched incrementally.
"""

from decimal import Decimal

from pydantic import BaseModel

from ..enums import LoanStatus
from ..schemas.loan import Loan, normalize_identity

LIMIT_CAP = Decimal("1000")
RECOMMENDATION_BONUS = Decimal("100")
MAX_BONUS_RECOMMENDATIONS = 2

# distinct elder approvals -> (base limit, term in months); 2+ uses the last tier
_ELDER_TIERS: tuple[tuple[Decimal, int], ...] = (
    (Decimal("300"), 6),
    (Decimal("500"), 6),
    (Decimal("800"), 9),
)


class UnderwritingResult(BaseModel):
    approved_limit: Decimal
    term_months: int
    status: LoanStatus


def distinct_recommenders(recommenders: list[str]) -> int:
    """Count unique recommender identities, ignoring case and blanks."""
    return len({normalize_identity(r) for r in recommenders if r.strip()})


def underwrite(
    *,
    mufundisi_approved: bool,
    elder_count: int,
    recommenders: list[str],
    declined: bool = False,
) -> UnderwritingResult:
    """Derive limit, term and status from the approval facts."""
    if not mufundisi_approved:
        status = LoanStatus.DECLINED if declined else LoanStatus.PENDING
        return UnderwritingResult(approved_limit=Decimal("0"), term_months=0, status=status)

    base, term = _ELDER_TIERS[min(elder_count, len(_ELDER_TIERS) - 1)]
    bonus = RECOMMENDATION_BONUS * min(
        distinct_recommenders(recommenders), MAX_BONUS_RECOMMENDATIONS
    )
    status = LoanStatus.DECLINED if declined else LoanStatus.APPROVED
    return UnderwritingResult(
        approved_limit=min(base + bonus, LIMIT_CAP),
        term_months=term,
        status=status,
    )


def underwrite_loan(loan: Loan) -> UnderwritingResult:
    """Run ``underwrite`` on a loan's current facts."""
    return underwrite(
        mufundisi_approved=loan.mufundisi_approved,
        elder_count=len(loan.elder_approvals),
        recommenders=[r.recommender for r in loan.recommendations],
        declined=loan.declined,
    )


def apply_underwriting(loan: Loan) -> Loan:
    """Recompute the derived fields in place and return the loan."""
    result = underwrite_loan(loan)
    loan.approved_limit = result.approved_limit
    loan.term_months = result.term_months
    loan.status = result.status
    return loan
