# This project was developed with assistance from AI tools.
"""
Domain enums for the wallet and lending workflow.

Shared by the session/loan schemas, the ledger and the conversation engine.
"""

import enum


class Role(str, enum.Enum):
    MEMBER = "member"
    MUFUNDISI = "mufundisi"
    ELDER = "elder"

    @classmethod
    def approver_roles(cls) -> frozenset["Role"]:
        """Roles allowed to approve or decline a loan."""
        return frozenset({cls.MUFUNDISI, cls.ELDER})


class Region(str, enum.Enum):
    REGION_A = "region_a"
    REGION_B = "region_b"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


class LoanStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DECLINED = "declined"

    @classmethod
    def terminal_statuses(cls) -> frozenset["LoanStatus"]:
        """Statuses no approval event can move a loan out of."""
        return frozenset({cls.DECLINED})


class StageKind(str, enum.Enum):
    ASK_PIN = "ask_pin"
    VERIFY_PIN = "verify_pin"
    ASK_NAME = "ask_name"
    MAIN_MENU = "main_menu"
    SEND_TO = "send_to"
    SEND_AMOUNT = "send_amount"
    CONFIRM_SEND = "confirm_send"
    AIRTIME = "airtime"
    SUPPORT = "support"
    POST_ACTION = "post_action"
    LOANS_MENU = "loans_menu"
    LOAN_AMOUNT = "loan_amount"
    MY_LOANS = "my_loans"
    BORROW_AMOUNT = "borrow_amount"
    RECOMMEND_SELECT = "recommend_select"
    RECOMMEND_CONFIRM = "recommend_confirm"
    RECOMMEND_REASON = "recommend_reason"
    APPROVER_SELECT = "approver_select"
    APPROVER_ACTION = "approver_action"
    DECLINE_REASON = "decline_reason"

    @classmethod
    def loan_stages(cls) -> frozenset["StageKind"]:
        """Stages that carry the ID of the loan being acted on."""
        return frozenset(
            {
                cls.BORROW_AMOUNT,
                cls.RECOMMEND_CONFIRM,
                cls.RECOMMEND_REASON,
                cls.APPROVER_ACTION,
                cls.DECLINE_REASON,
            }
        )

    @classmethod
    def free_text_stages(cls) -> frozenset["StageKind"]:
        """Stages whose input is a name or a reason, never a profile command."""
        return frozenset(
            {cls.ASK_NAME, cls.SEND_TO, cls.RECOMMEND_REASON, cls.DECLINE_REASON}
        )
