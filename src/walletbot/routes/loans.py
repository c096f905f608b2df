# This project was developed with assistance from AI tools.
"""Loan REST endpoints (read-only)."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from ..enums import Region
from ..schemas import Pagination
from ..schemas.loan import LoanItem, LoanListResponse, LoanResponse
from ..services.ledger import LoanLedger, get_loan_ledger

router = APIRouter()


@router.get("", response_model=LoanListResponse)
async def list_loans(
    region: Region | None = None,
    applicant: str | None = None,
    offset: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    ledger: LoanLedger = Depends(get_loan_ledger),
) -> LoanListResponse:
    """List loans, optionally filtered by region and applicant name."""
    if applicant:
        loans = ledger.view(applicant)
        if region is not None:
            loans = [loan for loan in loans if loan.region == region]
    elif region is not None:
        loans = ledger.list_by_region(region)
    else:
        loans = ledger.list_all()

    page = loans[offset : offset + limit]
    return LoanListResponse(
        data=[LoanItem.from_loan(loan) for loan in page],
        pagination=Pagination.for_page(len(loans), offset, limit),
    )


@router.get("/{loan_id}", response_model=LoanResponse)
async def get_loan(
    loan_id: str,
    ledger: LoanLedger = Depends(get_loan_ledger),
) -> LoanResponse:
    """Get a single loan by ID. Unknown IDs surface as 404 Problem Details."""
    return LoanResponse(data=LoanItem.from_loan(ledger.get(loan_id)))
