from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set


class Direction(Enum):
    FORWARD = "forward"  # OPN -> токен
    REVERSE = "reverse"  # токен -> OPN


class Sufficiency(Enum):
    ZERO = "zero"
    LOW = "low"
    ADEQUATE = "adequate"


class OutcomeStatus(Enum):
    SUCCEEDED = "succeeded"
    REVERTED = "reverted"
    FAILED = "failed"


class FailureReason(Enum):
    ZERO_LIQUIDITY = "zero_liquidity"
    LOW_BALANCE = "low_balance"
    APPROVAL_FAILED = "approval_failed"
    EXECUTION_REVERTED = "execution_reverted"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    NONCE_CONFLICT = "nonce_conflict"
    MALFORMED_REQUEST = "malformed_request"
    TRANSPORT = "transport"
    RECEIPT_TIMEOUT = "receipt_timeout"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class SwapPair:
    output: str
    symbol: str
    decimals: int = 18


@dataclass(frozen=True)
class TokenBalance:
    balance: int
    decimals: int


@dataclass(frozen=True)
class WalletContext:
    """Снимок кошелька: заменяется новым при обновлении балансов"""
    address: str
    account: Any
    client: Any
    native_balance: int
    tokens: Dict[str, TokenBalance] = field(default_factory=dict)

    def has_token_balance(self) -> bool:
        return any(token.balance > 0 for token in self.tokens.values())


@dataclass(frozen=True)
class SwapRequest:
    direction: Direction
    amount_in: int
    path: List[str]
    attempt: int = 0


@dataclass(frozen=True)
class Quote:
    amount_out: int
    sufficiency: Sufficiency


@dataclass(frozen=True)
class SwapOutcome:
    status: OutcomeStatus
    tx_hash: Optional[str] = None
    gas_used: Optional[int] = None
    block_number: Optional[int] = None
    reason: Optional[FailureReason] = None
    attempts: int = 0

    @classmethod
    def success(cls, tx_hash: str, gas_used: int, block_number: int, attempts: int) -> "SwapOutcome":
        return cls(OutcomeStatus.SUCCEEDED, tx_hash=tx_hash, gas_used=gas_used,
                   block_number=block_number, attempts=attempts)

    @classmethod
    def reverted(cls, gas_used: int, attempts: int) -> "SwapOutcome":
        return cls(OutcomeStatus.REVERTED, gas_used=gas_used, attempts=attempts)

    @classmethod
    def failed(cls, reason: FailureReason, attempts: int = 0) -> "SwapOutcome":
        return cls(OutcomeStatus.FAILED, reason=reason, attempts=attempts)

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.SUCCEEDED


@dataclass
class CycleState:
    """Изменяемое состояние одного прохода кошелька (forward + reverse)"""
    touched_tokens: Set[str] = field(default_factory=set)
    forward_success: int = 0
    forward_failed: int = 0
    reverse_success: int = 0
    reverse_attempted: int = 0

    def record_forward(self, outcome: SwapOutcome):
        if outcome.ok:
            self.forward_success += 1
        else:
            self.forward_failed += 1


@dataclass
class FleetConfig:
    private_keys: List[str]
    proxies: List[str] = field(default_factory=list)
    swap_count: Optional[int] = None

    def proxy_for(self, index: int) -> Optional[str]:
        if not self.proxies:
            return None
        return self.proxies[index % len(self.proxies)]


@dataclass(frozen=True)
class WalletCycleReport:
    address: str
    forward_success: int = 0
    forward_failed: int = 0
    reverse_success: int = 0
    reverse_attempted: int = 0
    final_native_balance: Optional[int] = None
    skipped: bool = False
