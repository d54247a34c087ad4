from __future__ import annotations

from typing import Any

from surrogateagent.records import PaymentTransaction, new_id, utc_now
from surrogateagent.services.market_data import parse_number
from surrogateagent.services.session_store import SessionStore
from .base import AgentType, PayloadType, Tool, ToolResult, failure, param_text

PAYMENT_STATUS_SUCCESS = "Success"


class PaymentTool(Tool):
    """Simulated ledger: every valid request settles immediately."""

    agent = AgentType.PAYMENT

    def __init__(self, store: SessionStore) -> None:
        self._store = store

    def run(self, action: str, params: dict[str, Any]) -> ToolResult:
        if action != "make_payment":
            return failure("Unknown payment action.")

        raw_amount = params.get("amount")
        amount = parse_number(raw_amount) if raw_amount not in (None, "") else 0.0
        recipient = param_text(params, "recipient")
        if amount <= 0 or not recipient:
            return failure("Missing amount or recipient for payment.")

        tx_id = new_id()
        tx = PaymentTransaction(
            id=tx_id,
            amount=amount,
            currency=(param_text(params, "currency") or "USD").upper(),
            recipient=recipient,
            description=param_text(params, "description") or "Payment",
            status=PAYMENT_STATUS_SUCCESS,
            timestamp=utc_now().isoformat(),
            reference=tx_id[-6:].upper(),
        )
        self._store.add_payment(tx)
        return ToolResult(
            success=True,
            message=(
                "Payment processed\n"
                f"Sent ${tx.amount:.2f} {tx.currency} to {tx.recipient}\n"
                f"Ref: {tx.reference}"
            ),
            data=tx.to_dict(),
            payload_type=PayloadType.PAYMENT,
        )
