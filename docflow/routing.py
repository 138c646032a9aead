"""Threshold-based approval routing."""

from __future__ import annotations

from typing import Optional

from .contracts import ApprovalType, Decision, DocumentStatus

DEFAULT_THRESHOLD = 1000.0


class DecisionRouter:
    """Decide between automatic and manual approval.

    Documents whose amount is below ``threshold`` are approved automatically.
    A missing amount counts as ``0``.
    """

    def __init__(self, threshold: float = DEFAULT_THRESHOLD) -> None:
        self.threshold = threshold

    def route(self, amount: Optional[float]) -> Decision:
        value = amount or 0
        if value < self.threshold:
            return Decision(
                auto_approve=True,
                amount=value,
                status=DocumentStatus.APPROVED,
                approval_type=ApprovalType.AUTOMATIC,
                reason=f"Amount below ${self.threshold:.0f} threshold",
            )
        return Decision(
            auto_approve=False,
            amount=value,
            status=DocumentStatus.AWAITING_APPROVAL,
            approval_type=ApprovalType.MANUAL,
            reason=f"Document requires manual approval due to amount >= ${self.threshold:.0f}",
        )
