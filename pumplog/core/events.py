"""
Event value types decoded from Pump.fun / Raydium program logs

Addresses are held as solders Pubkey (raw 32 bytes); they only become
base58 text when rendered via str() or to_dict().
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Optional, Union

from solders.pubkey import Pubkey


def _render(value: Any) -> Any:
    if isinstance(value, Pubkey):
        return str(value)
    return value


class _EventRecord:
    """Shared dict rendering for the record dataclasses"""

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: _render(getattr(self, f.name)) for f in fields(self)}


@dataclass
class CreateTokenInfo(_EventRecord):
    """Token creation record (pump.fun CreateEvent)"""
    name: str
    symbol: str
    uri: str
    mint: Pubkey
    bonding_curve: Pubkey
    user: Pubkey
    slot: int = 0


@dataclass
class TradeInfo(_EventRecord):
    """Buy / sell record (pump.fun TradeEvent)

    sol_amount and reserves in lamports, token amounts in base units.
    """
    mint: Pubkey
    sol_amount: int
    token_amount: int
    is_buy: bool
    user: Pubkey
    timestamp: int  # unix seconds, signed
    virtual_sol_reserves: int
    virtual_token_reserves: int
    real_sol_reserves: int
    real_token_reserves: int
    slot: int = 0


@dataclass
class CompleteInfo(_EventRecord):
    """Bonding curve completion record (pump.fun CompleteEvent)"""
    user: Pubkey
    mint: Pubkey
    bonding_curve: Pubkey
    timestamp: int


@dataclass
class SwapBaseInLog(_EventRecord):
    """Raydium AMM swap_base_in log record (ray_log payload)"""
    log_type: int
    amount_in: int
    minimum_out: int
    direction: int
    user_source: int
    pool_coin: int
    pool_pc: int
    out_amount: int


class InstructionKind(Enum):
    """Top-level instruction classification from 'Instruction:' markers"""
    UNCLASSIFIED = "unclassified"
    CREATE = "create"
    TRADE = "trade"


class InstructionType(Enum):
    """Outcome of one completed top-level invocation"""
    CREATE_TOKEN = "create_token"
    USER_TRADE = "user_trade"
    BOT_TRADE = "bot_trade"
    OTHER = "other"


@dataclass
class DexInstruction:
    """One completed top-level invocation of the target program"""
    instruction_type: InstructionType
    info: Optional[Union[CreateTokenInfo, TradeInfo]] = None

    @classmethod
    def create_token(cls, info: CreateTokenInfo) -> "DexInstruction":
        return cls(InstructionType.CREATE_TOKEN, info)

    @classmethod
    def user_trade(cls, info: TradeInfo) -> "DexInstruction":
        return cls(InstructionType.USER_TRADE, info)

    @classmethod
    def bot_trade(cls, info: TradeInfo) -> "DexInstruction":
        return cls(InstructionType.BOT_TRADE, info)

    @classmethod
    def other(cls) -> "DexInstruction":
        return cls(InstructionType.OTHER)


class EventType(Enum):
    """Classified event delivered to callers"""
    NEW_TOKEN = "new_token"
    NEW_DEV_TRADE = "new_dev_trade"
    NEW_USER_TRADE = "new_user_trade"
    NEW_BOT_TRADE = "new_bot_trade"
    ERROR = "error"


@dataclass
class DomainEvent:
    """
    Final classified output for one instruction

    Attributes:
        event_type: What happened
        data: Decoded record (None for ERROR events)
        message: Error description (ERROR events only)
        signature: Transaction signature, when the caller supplied one
    """
    event_type: EventType
    data: Optional[Union[CreateTokenInfo, TradeInfo]] = None
    message: Optional[str] = None
    signature: Optional[str] = None

    @classmethod
    def error(cls, message: str, signature: Optional[str] = None) -> "DomainEvent":
        return cls(EventType.ERROR, message=message, signature=signature)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary"""
        result: Dict[str, Any] = {"event": self.event_type.value}
        if self.signature:
            result["signature"] = self.signature
        if self.data is not None:
            result.update(self.data.to_dict())
        if self.message is not None:
            result["message"] = self.message
        return result
