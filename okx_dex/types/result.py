"""
Result type definitions for swaps, approvals and simulations
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .common import format_display_amount

ALREADY_APPROVED_MESSAGE = "Token already approved for the requested amount"


@dataclass
class TokenDisplay:
    """Display view of one side of a swap"""
    symbol: str
    amount: str
    decimal: str

    def to_dict(self) -> Dict[str, str]:
        return {"symbol": self.symbol, "amount": self.amount, "decimal": self.decimal}


@dataclass
class SwapDetails:
    from_token: TokenDisplay
    to_token: TokenDisplay
    price_impact: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fromToken": self.from_token.to_dict(),
            "toToken": self.to_token.to_dict(),
            "priceImpact": self.price_impact,
        }


@dataclass
class SwapResult:
    """
    Normalized swap execution result

    Attributes:
        success: Always True for a returned result (failures raise)
        transaction_id: Chain transaction hash / signature / digest
        explorer_url: Explorer link for the transaction
        details: Token amounts and price impact from the router result
    """
    success: bool
    transaction_id: str
    explorer_url: str
    details: Optional[SwapDetails] = None

    @classmethod
    def from_router_result(
        cls,
        transaction_id: str,
        router_result: Dict[str, Any],
        explorer: str,
    ) -> "SwapResult":
        """Format a confirmed transaction with the router result's economic terms"""
        from_token = router_result["fromToken"]
        to_token = router_result["toToken"]
        details = SwapDetails(
            from_token=TokenDisplay(
                symbol=from_token.get("tokenSymbol"),
                amount=format_display_amount(router_result["fromTokenAmount"], from_token["decimal"]),
                decimal=from_token["decimal"],
            ),
            to_token=TokenDisplay(
                symbol=to_token.get("tokenSymbol"),
                amount=format_display_amount(router_result["toTokenAmount"], to_token["decimal"]),
                decimal=to_token["decimal"],
            ),
            price_impact=router_result.get("priceImpactPercentage"),
        )
        return cls(
            success=True,
            transaction_id=transaction_id,
            explorer_url=f"{explorer}/{transaction_id}",
            details=details,
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "success": self.success,
            "transactionId": self.transaction_id,
            "explorerUrl": self.explorer_url,
        }
        if self.details is not None:
            result["details"] = self.details.to_dict()
        return result

    def __str__(self) -> str:
        return f"SwapResult({self.transaction_id[:16]}..., {self.explorer_url})"


class ApprovalStatus(Enum):
    ALREADY_APPROVED = "already_approved"
    SUBMITTED = "submitted"


@dataclass
class ApprovalOutcome:
    """Tagged result of an approval executor: already approved, or submitted with a hash"""
    status: ApprovalStatus
    transaction_hash: Optional[str] = None
    allowance: Optional[int] = None

    @property
    def already_approved(self) -> bool:
        return self.status == ApprovalStatus.ALREADY_APPROVED

    @classmethod
    def approved(cls, allowance: int) -> "ApprovalOutcome":
        return cls(status=ApprovalStatus.ALREADY_APPROVED, allowance=allowance)

    @classmethod
    def submitted(cls, transaction_hash: str) -> "ApprovalOutcome":
        return cls(status=ApprovalStatus.SUBMITTED, transaction_hash=transaction_hash)


@dataclass
class ApprovalResult:
    """
    Facade-level approval result

    The already-approved case keeps the success shape with an empty hash.
    """
    transaction_hash: str
    explorer_url: str
    already_approved: bool = False
    message: Optional[str] = None

    @classmethod
    def from_outcome(cls, outcome: ApprovalOutcome, explorer: str) -> "ApprovalResult":
        if outcome.already_approved:
            return cls(
                transaction_hash="",
                explorer_url="",
                already_approved=True,
                message=ALREADY_APPROVED_MESSAGE,
            )
        return cls(
            transaction_hash=outcome.transaction_hash,
            explorer_url=f"{explorer}/{outcome.transaction_hash}",
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "transactionHash": self.transaction_hash,
            "explorerUrl": self.explorer_url,
        }
        if self.already_approved:
            result["alreadyApproved"] = True
            result["message"] = self.message
        return result


@dataclass
class SimulationResult:
    """
    Pre-transaction simulation summary

    Attributes:
        success: True when the simulation reported no failure reason
        gas_used: Gas (or compute units) consumed
        error: Failure reason reported by the simulator
        asset_changes: List of {direction, symbol, type, amount, ...}
        risks: List of {address, addressType}
        logs: Debug trace (only when include_debug was requested)
    """
    success: bool
    gas_used: Optional[str] = None
    error: Optional[str] = None
    asset_changes: List[Dict[str, Any]] = field(default_factory=list)
    risks: List[Dict[str, Any]] = field(default_factory=list)
    logs: Optional[Any] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any], include_debug: bool = False) -> "SimulationResult":
        fail_reason = data.get("failReason") or None
        return cls(
            success=not fail_reason,
            gas_used=data.get("gasUsed"),
            error=fail_reason,
            asset_changes=list(data.get("assetChange") or []),
            risks=list(data.get("risks") or []),
            logs=data.get("debug") if include_debug else None,
        )
