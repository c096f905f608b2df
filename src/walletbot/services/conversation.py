# This project was developed with assistance from AI tools.
"""Conversation engine -- one inbound message in, one reply out.

``ConversationEngine.handle`` locks the sender's session, intercepts
global profile commands (``role elder``, ``region b``, ``language sn``)
outside the name and reason prompts, then dispatches on the session's
stage. Each stage handler validates its input, mutates the session and/or
the loan ledger, picks the next stage and returns the reply text.

Recoverable domain errors never escape: input errors re-prompt with the
stage unchanged, ledger rejections are reported and the user is returned
to the post-action menu. A stage with no handler, or one whose loan no
longer resolves, expires the session.
"""

import logging
from collections.abc import Callable
from decimal import Decimal
from typing import Any

from ..core.config import settings
from ..core.errors import (
    InputValidationError,
    InsufficientResourceError,
    NotFoundError,
    WalletBotError,
)
from ..enums import LoanStatus, Region, Role, StageKind
from ..schemas.loan import Loan, normalize_identity
from ..schemas.session import Session
from .i18n import Translator, get_translator
from .ledger import LoanLedger, get_loan_ledger
from .parsing import (
    ProfileCommand,
    is_affirmative,
    is_negative,
    parse_airtime,
    parse_amount,
    parse_choice,
    parse_free_text,
    parse_index,
    parse_name,
    parse_pin,
    parse_profile_command,
)
from .sessions import SessionStore, get_session_store

logger = logging.getLogger(__name__)

Handler = Callable[[Session, str], str]

_MAIN_MENU_OPTIONS = range(1, 8)
_SUPPORT_OPTIONS = range(1, 4)
_LOANS_MENU_OPTIONS = range(0, 5)
_APPROVER_OPTIONS = range(0, 3)


class ConversationEngine:
    """Per-identity state machine over the session store and loan ledger."""

    def __init__(
        self,
        store: SessionStore,
        ledger: LoanLedger,
        translator: Translator,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._translator = translator
        self._handlers: dict[StageKind, Handler] = {
            StageKind.ASK_PIN: self._ask_pin,
            StageKind.VERIFY_PIN: self._verify_pin,
            StageKind.ASK_NAME: self._ask_name,
            StageKind.MAIN_MENU: self._main_menu,
            StageKind.SEND_TO: self._send_to,
            StageKind.SEND_AMOUNT: self._send_amount,
            StageKind.CONFIRM_SEND: self._confirm_send,
            StageKind.AIRTIME: self._airtime,
            StageKind.SUPPORT: self._support,
            StageKind.POST_ACTION: self._post_action,
            StageKind.LOANS_MENU: self._loans_menu,
            StageKind.LOAN_AMOUNT: self._loan_amount,
            StageKind.MY_LOANS: self._my_loans,
            StageKind.BORROW_AMOUNT: self._borrow_amount,
            StageKind.RECOMMEND_SELECT: self._recommend_select,
            StageKind.RECOMMEND_CONFIRM: self._recommend_confirm,
            StageKind.RECOMMEND_REASON: self._recommend_reason,
            StageKind.APPROVER_SELECT: self._approver_select,
            StageKind.APPROVER_ACTION: self._approver_action,
            StageKind.DECLINE_REASON: self._decline_reason,
        }

    # ------------------------------------------------------------------
    # Entry point
    # ------------------------------------------------------------------

    def handle(self, identity: str, raw_text: str) -> str:
        """Process one message from ``identity`` and return the reply text."""
        text = raw_text.strip()
        with self._store.locked(identity) as (session, created):
            logger.debug("Message from %s at stage %s", identity, session.stage)

            if not created and session.stage.kind not in StageKind.free_text_stages():
                try:
                    command = parse_profile_command(text)
                except InputValidationError as exc:
                    return self._error_text(session, exc)
                if command is not None:
                    return self._apply_profile(session, command)

            handler = self._handlers.get(session.stage.kind)
            loan_id = session.stage.loan_id
            if handler is None or (loan_id is not None and not self._ledger.exists(loan_id)):
                return self._expire(session)

            try:
                return handler(session, text)
            except WalletBotError as exc:
                logger.info("Rejected input from %s at %s: %s", identity, session.stage, exc)
                return self._error_text(session, exc)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _t(self, session: Session, key: str, **params: Any) -> str:
        return self._translator.text(session.language, key, **params)

    @staticmethod
    def _money(amount: Decimal) -> str:
        return f"{settings.CURRENCY_SYMBOL}{amount:,.2f}"

    def _error_text(self, session: Session, exc: WalletBotError) -> str:
        params = {
            name: self._money(value) if isinstance(value, Decimal) else value
            for name, value in exc.params.items()
        }
        return self._t(session, exc.key, **params)

    def _done(self, session: Session, body: str) -> str:
        """Finish an action and offer the post-action menu."""
        session.move_to(StageKind.POST_ACTION)
        return f"{body}\n\n{self._t(session, 'menu.post_action')}"

    def _expire(self, session: Session) -> str:
        logger.warning("Session for %s expired at stage %s", session.identity, session.stage)
        self._store.delete(session.identity)
        return self._t(session, "session.expired")

    def _main_menu_text(self, session: Session) -> str:
        return self._t(session, "menu.main", name=session.name)

    def _loans_menu_text(self, session: Session) -> str:
        return self._t(
            session,
            "menu.loans",
            role=self._t(session, f"role.{session.role.value}"),
            region=session.region.label,
        )

    def _status_label(self, session: Session, status: LoanStatus) -> str:
        return self._t(session, f"status.{status.value}")

    def _apply_profile(self, session: Session, command: ProfileCommand) -> str:
        if command.field == "role":
            session.role = Role(command.value)
            logger.info("%s switched role to %s", session.identity, session.role.value)
            body = self._t(
                session, "profile.role_changed", role=self._t(session, f"role.{command.value}")
            )
        elif command.field == "region":
            session.region = Region(command.value)
            logger.info("%s switched region to %s", session.identity, session.region.value)
            body = self._t(session, "profile.region_changed", region=session.region.label)
        else:
            if not self._translator.has_language(command.value):
                return self._t(session, "profile.bad_language")
            session.language = command.value
            body = self._t(session, "profile.language_changed")
        return f"{body}\n{self._t(session, 'profile.continue')}"

    # ------------------------------------------------------------------
    # Onboarding
    # ------------------------------------------------------------------

    def _ask_pin(self, session: Session, text: str) -> str:
        session.move_to(StageKind.VERIFY_PIN)
        return self._t(session, "pin.prompt")

    def _verify_pin(self, session: Session, text: str) -> str:
        session.pin = parse_pin(text)
        session.move_to(StageKind.ASK_NAME)
        return self._t(session, "pin.accepted")

    def _ask_name(self, session: Session, text: str) -> str:
        session.name = parse_name(text)
        session.move_to(StageKind.MAIN_MENU)
        return self._main_menu_text(session)

    # ------------------------------------------------------------------
    # Wallet
    # ------------------------------------------------------------------

    def _main_menu(self, session: Session, text: str) -> str:
        choice = parse_choice(text, _MAIN_MENU_OPTIONS, key="menu.invalid_main")
        if choice == 1:
            return self._done(
                session, self._t(session, "balance.show", balance=self._money(session.balance))
            )
        if choice == 2:
            session.move_to(StageKind.SEND_TO)
            return self._t(session, "send.ask_recipient")
        if choice == 3:
            session.move_to(StageKind.AIRTIME)
            return self._t(session, "airtime.prompt")
        if choice == 4:
            return self._done(session, self._t(session, "bills.unavailable"))
        if choice == 5:
            history = "\n".join(session.transactions) or self._t(session, "transactions.empty")
            return self._done(session, self._t(session, "transactions.list", items=history))
        if choice == 6:
            session.move_to(StageKind.SUPPORT)
            return self._t(session, "support.menu")
        session.move_to(StageKind.LOANS_MENU)
        return self._loans_menu_text(session)

    def _send_to(self, session: Session, text: str) -> str:
        session.pending_name = parse_name(text)
        session.move_to(StageKind.SEND_AMOUNT)
        return self._t(session, "send.ask_amount", name=session.pending_name)

    def _send_amount(self, session: Session, text: str) -> str:
        session.pending_amount = parse_amount(text, key="send.invalid_amount")
        session.move_to(StageKind.CONFIRM_SEND)
        return self._t(
            session,
            "send.confirm",
            amount=self._money(session.pending_amount),
            name=session.pending_name,
        )

    def _confirm_send(self, session: Session, text: str) -> str:
        amount, recipient = session.pending_amount, session.pending_name
        session.pending_amount, session.pending_name = Decimal("0.00"), ""
        if not is_affirmative(text):
            return self._done(session, self._t(session, "send.cancelled"))
        if session.balance < amount:
            return self._done(session, self._t(session, "send.insufficient"))

        session.balance -= amount
        session.record_transaction(
            self._t(session, "tx.sent", amount=self._money(amount), name=recipient),
            settings.MAX_TRANSACTIONS,
        )
        logger.info("%s sent %s to %s", session.identity, amount, recipient)
        return self._done(
            session, self._t(session, "send.success", balance=self._money(session.balance))
        )

    def _airtime(self, session: Session, text: str) -> str:
        amount, number = parse_airtime(text)
        if session.balance < amount:
            return self._done(session, self._t(session, "airtime.insufficient"))

        session.balance -= amount
        if number:
            entry = self._t(session, "tx.airtime_to", amount=self._money(amount), number=number)
        else:
            entry = self._t(session, "tx.airtime", amount=self._money(amount))
        session.record_transaction(entry, settings.MAX_TRANSACTIONS)
        return self._done(
            session, self._t(session, "airtime.success", balance=self._money(session.balance))
        )

    def _support(self, session: Session, text: str) -> str:
        choice = parse_choice(text, _SUPPORT_OPTIONS, key="support.invalid")
        return self._done(session, self._t(session, f"support.option_{choice}"))

    def _post_action(self, session: Session, text: str) -> str:
        if text == "1":
            session.move_to(StageKind.MAIN_MENU)
            return self._main_menu_text(session)
        if text == "0" or is_negative(text):
            goodbye = self._t(session, "goodbye")
            self._store.delete(session.identity)
            return goodbye
        return self._t(session, "post_action.invalid")

    # ------------------------------------------------------------------
    # Loans: menus and numbered lists
    # ------------------------------------------------------------------

    def _loans_menu(self, session: Session, text: str) -> str:
        choice = parse_choice(text, _LOANS_MENU_OPTIONS, key="loans.invalid")
        if choice == 0:
            session.move_to(StageKind.MAIN_MENU)
            return self._main_menu_text(session)
        if choice == 1:
            session.move_to(StageKind.LOAN_AMOUNT)
            return self._t(session, "loan.ask_amount", region=session.region.label)
        if choice == 2:
            return self._show_my_loans(session)
        if choice == 3:
            return self._show_recommendable(session)
        if session.role not in Role.approver_roles():
            return f"{self._t(session, 'approve.not_approver')}\n\n{self._loans_menu_text(session)}"
        return self._show_reviewable(session)

    def _render_list(
        self,
        session: Session,
        kind: StageKind,
        loans: list[Loan],
        header_key: str,
        empty_key: str,
        line: Callable[[int, Loan], str],
    ) -> str:
        """Render a numbered loan list and store a fresh index -> loan ID map."""
        if not loans:
            session.move_to(StageKind.LOANS_MENU)
            return f"{self._t(session, empty_key)}\n\n{self._loans_menu_text(session)}"

        session.move_to(kind)
        session.selection = {index: loan.id for index, loan in enumerate(loans, start=1)}
        lines = [line(index, loan) for index, loan in enumerate(loans, start=1)]
        return "\n".join(
            [self._t(session, header_key), *lines, "", self._t(session, "list.footer")]
        )

    def _selected_loan(self, session: Session, text: str) -> Loan:
        """Resolve a list index against the selection of the current render."""
        index = parse_index(text)
        loan_id = session.selection.get(index) if index is not None else None
        if loan_id is None:
            raise NotFoundError(f"No list entry {text.strip()!r}", key="list.not_found")
        return self._ledger.get(loan_id)

    def _show_my_loans(self, session: Session) -> str:
        return self._render_list(
            session,
            StageKind.MY_LOANS,
            self._ledger.view(session.name),
            "loan.my_header",
            "loan.my_empty",
            lambda index, loan: self._t(
                session,
                "loan.my_line",
                index=index,
                loan_id=loan.id,
                amount=self._money(loan.requested_amount),
                status=self._status_label(session, loan.status),
                limit=self._money(loan.approved_limit),
                borrowed=self._money(loan.borrowed),
            ),
        )

    def _show_recommendable(self, session: Session) -> str:
        loans = [
            loan
            for loan in self._ledger.list_by_region(session.region)
            if loan.applicant_id != session.identity and loan.status != LoanStatus.DECLINED
        ]
        return self._render_list(
            session,
            StageKind.RECOMMEND_SELECT,
            loans,
            "recommend.header",
            "recommend.empty",
            lambda index, loan: self._t(
                session,
                "recommend.line",
                index=index,
                loan_id=loan.id,
                applicant=loan.applicant_name,
                amount=self._money(loan.requested_amount),
            ),
        )

    def _review_queue(self, session: Session) -> list[Loan]:
        """Loans the approver can still act on.

        A Mufundisi only has pending loans to approve. Elders also see approved
        loans, since each further Elder approval raises the limit tier.
        """
        if session.role == Role.MUFUNDISI:
            return self._ledger.list_pending(session.region)
        me = normalize_identity(session.identity)
        return [
            loan
            for loan in self._ledger.list_open(session.region)
            if me not in loan.elder_approvals
        ]

    def _show_reviewable(self, session: Session) -> str:
        return self._render_list(
            session,
            StageKind.APPROVER_SELECT,
            self._review_queue(session),
            "approve.header",
            "approve.empty",
            lambda index, loan: self._t(
                session,
                "approve.line",
                index=index,
                loan_id=loan.id,
                applicant=loan.applicant_name,
                amount=self._money(loan.requested_amount),
                status=self._status_label(session, loan.status),
                elders=len(loan.elder_approvals),
                recommendations=len(loan.recommendations),
            ),
        )

    # ------------------------------------------------------------------
    # Loans: applicant
    # ------------------------------------------------------------------

    def _loan_amount(self, session: Session, text: str) -> str:
        amount = parse_amount(text, key="loan.invalid_amount")
        try:
            loan = self._ledger.create(session.name, session.identity, session.region, amount)
        except WalletBotError as exc:
            return self._done(session, self._error_text(session, exc))
        return self._done(
            session,
            self._t(
                session,
                "loan.submitted",
                loan_id=loan.id,
                amount=self._money(amount),
                region=loan.region.label,
            ),
        )

    def _my_loans(self, session: Session, text: str) -> str:
        if text == "0":
            session.move_to(StageKind.LOANS_MENU)
            return self._loans_menu_text(session)
        loan = self._selected_loan(session, text)
        if loan.status != LoanStatus.APPROVED:
            return self._t(
                session,
                "loan.not_borrowable",
                loan_id=loan.id,
                status=self._status_label(session, loan.status),
            )
        if loan.available <= 0:
            return self._t(session, "borrow.nothing_available", loan_id=loan.id)
        session.move_to(StageKind.BORROW_AMOUNT, loan.id)
        return self._t(
            session,
            "borrow.ask_amount",
            loan_id=loan.id,
            available=self._money(loan.available),
            term=loan.term_months,
        )

    def _borrow_amount(self, session: Session, text: str) -> str:
        if text == "0":
            session.move_to(StageKind.LOANS_MENU)
            return self._loans_menu_text(session)
        loan_id = session.stage.loan_id
        amount = parse_amount(text, key="borrow.invalid_amount")
        try:
            result = self._ledger.borrow(loan_id, session.name, amount)
        except InsufficientResourceError as exc:
            return self._error_text(session, exc)
        except WalletBotError as exc:
            return self._done(session, self._error_text(session, exc))

        session.balance += result.amount
        session.record_transaction(
            self._t(session, "tx.loan", loan_id=loan_id, amount=self._money(result.amount)),
            settings.MAX_TRANSACTIONS,
        )
        return self._done(
            session,
            self._t(
                session,
                "borrow.success",
                amount=self._money(result.amount),
                loan_id=loan_id,
                balance=self._money(session.balance),
                remaining=self._money(result.loan.available),
            ),
        )

    # ------------------------------------------------------------------
    # Loans: recommenders
    # ------------------------------------------------------------------

    def _recommend_select(self, session: Session, text: str) -> str:
        if text == "0":
            session.move_to(StageKind.LOANS_MENU)
            return self._loans_menu_text(session)
        loan = self._selected_loan(session, text)
        session.move_to(StageKind.RECOMMEND_CONFIRM, loan.id)
        return self._t(
            session, "recommend.confirm", applicant=loan.applicant_name, loan_id=loan.id
        )

    def _recommend_confirm(self, session: Session, text: str) -> str:
        loan = self._ledger.get(session.stage.loan_id)
        if is_affirmative(text):
            session.move_to(StageKind.RECOMMEND_REASON, loan.id)
            return self._t(session, "recommend.ask_reason", applicant=loan.applicant_name)
        if is_negative(text):
            return self._done(session, self._t(session, "recommend.cancelled"))
        return self._t(session, "recommend.yes_no")

    def _recommend_reason(self, session: Session, text: str) -> str:
        reason = parse_free_text(text, key="recommend.reason_empty")
        loan_id = session.stage.loan_id
        try:
            result = self._ledger.recommend(
                loan_id, session.identity, session.region, reason=reason
            )
        except WalletBotError as exc:
            return self._done(session, self._error_text(session, exc))
        if result.already_recommended:
            return self._done(session, self._t(session, "recommend.already", loan_id=loan_id))
        return self._done(
            session,
            self._t(session, "recommend.success", applicant=result.loan.applicant_name),
        )

    # ------------------------------------------------------------------
    # Loans: approvers
    # ------------------------------------------------------------------

    def _approver_select(self, session: Session, text: str) -> str:
        if text == "0":
            session.move_to(StageKind.LOANS_MENU)
            return self._loans_menu_text(session)
        loan = self._selected_loan(session, text)
        session.move_to(StageKind.APPROVER_ACTION, loan.id)
        return self._t(
            session,
            "approve.action_menu",
            loan_id=loan.id,
            applicant=loan.applicant_name,
            amount=self._money(loan.requested_amount),
            elders=len(loan.elder_approvals),
            recommendations=len(loan.recommendations),
        )

    def _approver_action(self, session: Session, text: str) -> str:
        choice = parse_choice(text, _APPROVER_OPTIONS, key="approve.invalid")
        loan_id = session.stage.loan_id
        if choice == 0:
            return self._show_reviewable(session)
        if choice == 2:
            session.move_to(StageKind.DECLINE_REASON, loan_id)
            return self._t(session, "decline.ask_reason", loan_id=loan_id)
        try:
            loan = self._ledger.approve(
                loan_id, session.identity, session.role, approver_region=session.region
            )
        except WalletBotError as exc:
            return self._done(session, self._error_text(session, exc))
        return self._done(
            session,
            self._t(
                session,
                "approve.success",
                loan_id=loan.id,
                status=self._status_label(session, loan.status),
                limit=self._money(loan.approved_limit),
                term=loan.term_months,
            ),
        )

    def _decline_reason(self, session: Session, text: str) -> str:
        reason = parse_free_text(text, key="decline.reason_empty")
        loan_id = session.stage.loan_id
        try:
            self._ledger.decline(
                loan_id, session.identity, session.role, reason, approver_region=session.region
            )
        except WalletBotError as exc:
            return self._done(session, self._error_text(session, exc))
        return self._done(session, self._t(session, "decline.success", loan_id=loan_id))


# Module-level singleton
_engine: ConversationEngine | None = None


def get_conversation_engine() -> ConversationEngine:
    """Return the module-level ConversationEngine singleton."""
    global _engine
    if _engine is None:
        _engine = ConversationEngine(get_session_store(), get_loan_ledger(), get_translator())
    return _engine
