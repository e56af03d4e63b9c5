"""
Finance Tracker - Approval Policy

Decides whether a write needs executive sign-off before it counts in the
books. Pure: no database access, no clock.

Rules, first match wins:
- amount at or above the high value threshold
- category in the sensitive set
- otherwise no approval required
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, FrozenSet, Optional

from app.models.transaction import EntryApprovalStatus


HIGH_VALUE_THRESHOLD = Decimal("10000")

SENSITIVE_CATEGORIES: FrozenSet[str] = frozenset({
    "Refund",
    "Correction",
    "Adjustment",
    "Equity Withdrawal",
})

# Methods that carry a payload worth evaluating
EVALUATED_METHODS = frozenset({"POST", "PUT"})


@dataclass(frozen=True)
class ApprovalDecision:
    """Outcome of evaluating one write request."""
    requires_approval: bool
    reason: Optional[str]
    status: EntryApprovalStatus

    def as_context(self) -> Dict[str, Any]:
        """Request-scoped view consumed by downstream handlers."""
        return {
            "requiresApproval": self.requires_approval,
            "approvalReason": self.reason,
            "approvalStatus": self.status.value,
        }


NO_APPROVAL = ApprovalDecision(
    requires_approval=False,
    reason=None,
    status=EntryApprovalStatus.NA,
)


def parse_amount(amount: Any) -> Optional[Decimal]:
    """Leniently parse an amount; returns None when it is not a finite number."""
    if amount is None or isinstance(amount, bool):
        return None
    try:
        value = amount if isinstance(amount, Decimal) else Decimal(str(amount).strip())
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite():
        return None
    return value


def format_amount(amount: Decimal) -> str:
    """
    Format with thousands separators and at most three decimals,
    dropping trailing zeros: 15000 -> '15,000', 12500.5 -> '12,500.5'.
    """
    text = format(amount.quantize(Decimal("0.001"), rounding=ROUND_HALF_UP), ",f")
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


class ApprovalPolicy:
    """Approval rules for financial writes."""

    def __init__(
        self,
        threshold: Decimal = HIGH_VALUE_THRESHOLD,
        sensitive_categories: FrozenSet[str] = SENSITIVE_CATEGORIES,
    ):
        self.threshold = threshold
        self.sensitive_categories = sensitive_categories

    def evaluate(self, amount: Any, category: Optional[str], method: str) -> ApprovalDecision:
        """
        Evaluate a write request.

        Args:
            amount: Raw amount from the payload (any type, may be missing)
            category: Category from the payload
            method: HTTP method; only POST and PUT are evaluated
        """
        if method.upper() not in EVALUATED_METHODS:
            return NO_APPROVAL

        value = parse_amount(amount)
        if value is not None and value >= self.threshold:
            return ApprovalDecision(
                requires_approval=True,
                reason=f"High value transaction: Rs. {format_amount(value)}",
                status=EntryApprovalStatus.PENDING,
            )

        if isinstance(category, str) and category in self.sensitive_categories:
            return ApprovalDecision(
                requires_approval=True,
                reason=f"Sensitive category: {category}",
                status=EntryApprovalStatus.PENDING,
            )

        return NO_APPROVAL


# Default policy instance
approval_policy = ApprovalPolicy()
