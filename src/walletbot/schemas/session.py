# This project was developed with assistance from AI tools.
"""Conversation session schemas."""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..enums import Region, Role, StageKind

LoanId = Annotated[str, Field(pattern=r"^L\d{4,}$")]


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Stage(BaseModel):
    """Where an identity is in the conversation.

    Loan stages (see ``StageKind.loan_stages``) must carry the ID of the loan
    being acted on; every other stage must not. Instances are immutable, so a
    stage can only change by assigning a new one to the session.
    """

    model_config = ConfigDict(frozen=True)

    kind: StageKind
    loan_id: LoanId | None = None

    @model_validator(mode="after")
    def _check_payload(self) -> "Stage":
        needs_loan = self.kind in StageKind.loan_stages()
        if needs_loan and self.loan_id is None:
            raise ValueError(f"Stage {self.kind.value} requires a loan_id")
        if not needs_loan and self.loan_id is not None:
            raise ValueError(f"Stage {self.kind.value} does not take a loan_id")
        return self

    @classmethod
    def of(cls, kind: StageKind, loan_id: str | None = None) -> "Stage":
        return cls(kind=kind, loan_id=loan_id)

    def __str__(self) -> str:
        if self.loan_id is None:
            return self.kind.value
        return f"{self.kind.value}({self.loan_id})"


class Session(BaseModel):
    """Per-identity conversation state. Mutated only by the conversation engine."""

    model_config = ConfigDict(validate_assignment=True)

    identity: str
    stage: Stage = Field(default_factory=lambda: Stage.of(StageKind.ASK_PIN))
    pin: str | None = None
    name: str = ""
    role: Role = Role.MEMBER
    region: Region = Region.REGION_A
    language: str = "en"
    balance: Decimal = Decimal("0.00")
    pending_name: str = ""
    pending_amount: Decimal = Decimal("0.00")
    transactions: list[str] = Field(default_factory=list)
    # index -> loan ID from the most recent list render
    selection: dict[int, str] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_utcnow)
    last_seen: datetime = Field(default_factory=_utcnow)

    def move_to(self, kind: StageKind, loan_id: str | None = None) -> None:
        """Change stage. Any numbered selection from the previous menu is dropped."""
        self.stage = Stage.of(kind, loan_id)
        self.selection = {}

    def record_transaction(self, entry: str, limit: int) -> None:
        """Prepend a transaction record, keeping at most ``limit`` entries."""
        self.transactions = [entry, *self.transactions][:limit]
