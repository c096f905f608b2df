# This project was developed with assistance from AI tools.
"""Loan ledger -- owns every loan aggregate and all loan mutations.

Creation, recommendations, approvals, declines and draws funnel through
``LoanLedger`` and re-run the underwriting calculator after each event.

Locking: ``_lock`` guards the ID sequence and the loan table; each loan
has its own lock, so events against different loans never contend.
Readers get deep copies taken under the loan's lock.
"""

import itertools
import logging
import threading
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from decimal import Decimal

from ..core.config import settings
from ..core.errors import (
    AuthorizationError,
    InputValidationError,
    InsufficientResourceError,
    LoanStateError,
    NotFoundError,
)
from ..enums import LoanStatus, Region, Role
from ..schemas.loan import (
    BorrowResult,
    Loan,
    Recommendation,
    RecommendResult,
    format_loan_id,
    normalize_identity,
)
from .underwriting import apply_underwriting

logger = logging.getLogger(__name__)


class LoanLedger:
    """In-memory store of loan aggregates."""

    def __init__(self, max_pending_per_applicant: int | None = None) -> None:
        self._lock = threading.Lock()
        self._sequence = itertools.count(1)
        self._loans: dict[str, Loan] = {}
        self._loan_locks: dict[str, threading.Lock] = {}
        self._max_pending = max_pending_per_applicant or settings.MAX_PENDING_LOANS_PER_APPLICANT

    # -- internals --

    @contextmanager
    def _locked(self, loan_id: str) -> Iterator[Loan]:
        """Hold the loan's lock and yield the live aggregate."""
        with self._lock:
            loan = self._loans.get(loan_id)
            lock = self._loan_locks.get(loan_id)
        if loan is None or lock is None:
            raise NotFoundError(f"Loan {loan_id} not found", key="loan.not_found", loan_id=loan_id)
        with lock:
            yield loan

    def _snapshot(self, loan_id: str) -> Loan:
        with self._locked(loan_id) as loan:
            return loan.model_copy(deep=True)

    def _select(self, predicate: Callable[[Loan], bool]) -> list[Loan]:
        with self._lock:
            loan_ids = sorted(self._loans, key=lambda loan_id: (len(loan_id), loan_id))
        snapshots = (self._snapshot(loan_id) for loan_id in loan_ids)
        return [loan for loan in snapshots if predicate(loan)]

    @staticmethod
    def _touch(loan: Loan) -> Loan:
        loan.updated_at = datetime.now(UTC)
        return apply_underwriting(loan)

    @staticmethod
    def _check_approver(loan: Loan, role: Role, region: Region | None) -> None:
        if role not in Role.approver_roles():
            raise AuthorizationError(
                f"Role {role.value} cannot act on loan approvals",
                key="approve.not_approver",
            )
        if region is not None and region != loan.region:
            raise AuthorizationError(
                f"Loan {loan.id} belongs to {loan.region.value}, not {region.value}",
                key="error.wrong_region",
                region=loan.region.label,
            )

    @staticmethod
    def _check_open(loan: Loan) -> None:
        if loan.status in LoanStatus.terminal_statuses():
            raise LoanStateError(
                f"Loan {loan.id} is {loan.status.value}",
                key="loan.closed",
                loan_id=loan.id,
                status=loan.status.value,
            )

    # -- mutations --

    def create(
        self,
        applicant_name: str,
        applicant_id: str,
        region: Region,
        amount: Decimal,
    ) -> Loan:
        """Open a pending application and return a snapshot of it."""
        if amount <= 0:
            raise InputValidationError(f"Requested amount must be positive, got {amount}")

        applicant_key = normalize_identity(applicant_id)
        with self._lock:
            pending = sum(
                1
                for loan in self._loans.values()
                if normalize_identity(loan.applicant_id) == applicant_key
                and loan.status == LoanStatus.PENDING
            )
            if pending >= self._max_pending:
                raise LoanStateError(
                    f"Applicant {applicant_id} already has {pending} pending loans",
                    key="loan.too_many_pending",
                    count=pending,
                )
            loan = Loan(
                id=format_loan_id(next(self._sequence)),
                applicant_name=applicant_name,
                applicant_id=applicant_id,
                region=region,
                requested_amount=amount,
            )
            apply_underwriting(loan)
            self._loans[loan.id] = loan
            self._loan_locks[loan.id] = threading.Lock()
            snapshot = loan.model_copy(deep=True)

        logger.info(
            "Loan %s created for %s (%s, amount=%s)",
            loan.id,
            applicant_name,
            region.value,
            amount,
        )
        return snapshot

    def recommend(
        self,
        loan_id: str,
        recommender: str,
        recommender_region: Region,
        *,
        reason: str = "",
    ) -> RecommendResult:
        """Endorse an applicant. Repeat endorsements by one identity are not appended."""
        with self._locked(loan_id) as loan:
            if recommender_region != loan.region:
                logger.warning(
                    "Rejected recommendation of %s by %s: region %s != %s",
                    loan_id,
                    recommender,
                    recommender_region.value,
                    loan.region.value,
                )
                raise AuthorizationError(
                    f"Loan {loan_id} belongs to {loan.region.value}",
                    key="error.wrong_region",
                    region=loan.region.label,
                )
            self._check_open(loan)
            if loan.has_recommendation_from(recommender):
                return RecommendResult(loan=loan.model_copy(deep=True), already_recommended=True)

            loan.recommendations.append(
                Recommendation(recommender=recommender.strip(), reason=reason.strip())
            )
            self._touch(loan)
            logger.info(
                "Loan %s recommended by %s (limit=%s)", loan_id, recommender, loan.approved_limit
            )
            return RecommendResult(loan=loan.model_copy(deep=True))

    def approve(
        self,
        loan_id: str,
        approver: str,
        approver_role: Role,
        *,
        approver_region: Region | None = None,
    ) -> Loan:
        """Record a Mufundisi or Elder approval.

        Mufundisi approval is a single idempotent flag and is what moves the
        loan to Approved. Elder approvals are a set of identities and only
        raise the limit tier.
        """
        with self._locked(loan_id) as loan:
            self._check_approver(loan, approver_role, approver_region)
            self._check_open(loan)

            if approver_role == Role.MUFUNDISI:
                if not loan.mufundisi_approved:
                    loan.mufundisi_approved = True
                    loan.mufundisi_approver = approver
            else:
                loan.elder_approvals.add(normalize_identity(approver))

            self._touch(loan)
            logger.info(
                "Loan %s approved by %s %s (status=%s limit=%s term=%s)",
                loan_id,
                approver_role.value,
                approver,
                loan.status.value,
                loan.approved_limit,
                loan.term_months,
            )
            return loan.model_copy(deep=True)

    def decline(
        self,
        loan_id: str,
        approver: str,
        approver_role: Role,
        reason: str,
        *,
        approver_region: Region | None = None,
    ) -> Loan:
        """Decline a pending loan. Declined is terminal."""
        with self._locked(loan_id) as loan:
            self._check_approver(loan, approver_role, approver_region)
            self._check_open(loan)
            if loan.status != LoanStatus.PENDING:
                raise LoanStateError(
                    f"Loan {loan_id} is {loan.status.value} and can no longer be declined",
                    key="loan.closed",
                    loan_id=loan_id,
                    status=loan.status.value,
                )

            loan.declined = True
            loan.decline_reason = reason.strip() or None
            loan.declined_by = approver
            self._touch(loan)
            logger.info("Loan %s declined by %s: %s", loan_id, approver, loan.decline_reason)
            return loan.model_copy(deep=True)

    def borrow(self, loan_id: str, requester: str, amount: Decimal) -> BorrowResult:
        """Draw against an approved limit.

        On success the caller credits ``result.amount`` to the requester's wallet.
        """
        with self._locked(loan_id) as loan:
            if loan.status != LoanStatus.APPROVED:
                raise LoanStateError(
                    f"Loan {loan_id} is {loan.status.value}, not approved",
                    key="borrow.not_approved",
                    loan_id=loan_id,
                    status=loan.status.value,
                )
            if normalize_identity(requester) != normalize_identity(loan.applicant_name):
                raise AuthorizationError(
                    f"{requester} is not the applicant on loan {loan_id}",
                    key="borrow.not_applicant",
                )
            if amount <= 0:
                raise InputValidationError(f"Borrow amount must be positive, got {amount}")
            if amount > loan.available:
                raise InsufficientResourceError(
                    f"Requested {amount} exceeds remaining {loan.available} on loan {loan_id}",
                    key="borrow.exceeds_limit",
                    available=loan.available,
                )

            loan.borrowed += amount
            loan.updated_at = datetime.now(UTC)
            logger.info(
                "Loan %s drawn %s by %s (borrowed=%s of %s)",
                loan_id,
                amount,
                requester,
                loan.borrowed,
                loan.approved_limit,
            )
            return BorrowResult(loan=loan.model_copy(deep=True), amount=amount)

    # -- queries --

    def exists(self, loan_id: str) -> bool:
        with self._lock:
            return loan_id in self._loans

    def get(self, loan_id: str) -> Loan:
        return self._snapshot(loan_id)

    def view(self, applicant_name: str) -> list[Loan]:
        """All loans held by an applicant name (case-insensitive)."""
        key = normalize_identity(applicant_name)
        return self._select(lambda loan: normalize_identity(loan.applicant_name) == key)

    def list_pending(self, region: Region) -> list[Loan]:
        return self._select(
            lambda loan: loan.region == region and loan.status == LoanStatus.PENDING
        )

    def list_open(self, region: Region) -> list[Loan]:
        """Loans in ``region`` that can still take approval events."""
        closed = LoanStatus.terminal_statuses()
        return self._select(lambda loan: loan.region == region and loan.status not in closed)

    def list_by_region(self, region: Region) -> list[Loan]:
        return self._select(lambda loan: loan.region == region)

    def list_all(self) -> list[Loan]:
        return self._select(lambda loan: True)


# Module-level singleton
_ledger = LoanLedger()


def get_loan_ledger() -> LoanLedger:
    """Return the module-level LoanLedger singleton."""
    return _ledger
