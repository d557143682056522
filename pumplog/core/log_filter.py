"""
Invocation-depth log filter for the Pump.fun program

Walks one transaction's log lines, tracking how deeply the target program
is nested, and turns every completed top-level invocation into a
DexInstruction.

Log markers emitted by the runtime:

    Program <id> invoke [n]          entering the program
    Program log: Instruction: Buy    instruction name (top level only)
    Program data: <base64>           emitted event payload
    Program <id> success             leaving the program
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from solders.pubkey import Pubkey

from pumplog.core.config import PUMP_FUN_PROGRAM
from pumplog.core.decoders import parse_create_token_data, parse_trade_data
from pumplog.core.errors import DecodeError
from pumplog.core.events import DexInstruction, InstructionKind
from pumplog.core.extractors import extract_program_data
from pumplog.core.logger import get_logger
from pumplog.core.metrics import LatencyTimer, MetricsCollector, get_metrics


logger = get_logger(__name__)

INSTRUCTION_MARKER = "Program log: Instruction:"


@dataclass
class DecodeDiagnostic:
    """
    An instruction dropped because its payload did not decode

    Attributes:
        kind: Instruction kind the payload was decoded as
        error: The decode error
        line_index: Index of the success line that closed the invocation
    """
    kind: InstructionKind
    error: DecodeError
    line_index: int

    def to_dict(self) -> dict:
        return {"kind": self.kind.value, "line_index": self.line_index, **self.error.to_dict()}


@dataclass
class ScanResult:
    """Instructions in completion order plus diagnostics for dropped ones"""
    instructions: List[DexInstruction] = field(default_factory=list)
    diagnostics: List[DecodeDiagnostic] = field(default_factory=list)
    final_depth: int = 0


class LogFilter:
    """
    Scans transaction logs for top-level invocations of one program

    Only the outermost invocation is classified; nested re-entrant calls
    just move the depth counter. Lines seen at depth 0 are ignored. Within
    one top-level span the longest "Program data:" payload is kept. All
    state is local to a scan, so one filter can serve many threads.

    Usage:
        log_filter = LogFilter(bot_wallet=my_wallet)
        result = log_filter.scan(logs)
        for instruction in result.instructions:
            ...
    """

    def __init__(
        self,
        program_id: str = PUMP_FUN_PROGRAM,
        bot_wallet: Optional[Pubkey] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        """
        Initialize log filter

        Args:
            program_id: Base58 program id whose invocations are tracked
            bot_wallet: Trades by this wallet become BOT_TRADE instructions
            metrics: Metrics collector (defaults to the global one)
        """
        self.program_id = program_id
        self.bot_wallet = bot_wallet
        self.metrics = metrics or get_metrics()
        self._invoke_marker = f"Program {program_id} invoke"
        self._success_marker = f"Program {program_id} success"

    def scan(self, logs: Sequence[str]) -> ScanResult:
        """
        Scan one transaction's logs in a single pass

        Args:
            logs: Log lines in emission order

        Returns:
            ScanResult with decoded instructions and decode diagnostics
        """
        result = ScanResult()
        depth = 0
        kind = InstructionKind.UNCLASSIFIED
        payload = ""

        with LatencyTimer(self.metrics, "log_scan"):
            for index, line in enumerate(logs):
                if self._invoke_marker in line:
                    depth += 1
                    if depth == 1:
                        kind = InstructionKind.UNCLASSIFIED
                        payload = ""
                    continue

                if depth == 0:
                    continue

                if depth == 1 and INSTRUCTION_MARKER in line:
                    if "Create" in line:
                        kind = InstructionKind.CREATE
                    elif "Buy" in line or "Sell" in line:
                        kind = InstructionKind.TRADE
                    continue

                data = extract_program_data(line)
                if data is not None:
                    # Longest payload wins, not the latest one
                    if len(data) > len(payload):
                        payload = data
                    continue

                if self._success_marker in line:
                    depth -= 1
                    if depth == 0:
                        self._complete_invocation(kind, payload, index, result)

        result.final_depth = depth
        self.metrics.increment_counter("log_scans")
        return result

    def parse_instruction(self, logs: Sequence[str]) -> List[DexInstruction]:
        """Scan logs and return only the decoded instructions"""
        return self.scan(logs).instructions

    def _complete_invocation(
        self,
        kind: InstructionKind,
        payload: str,
        line_index: int,
        result: ScanResult
    ) -> None:
        """Decode the retained payload when a top-level invocation returns"""
        if kind is InstructionKind.UNCLASSIFIED or not payload:
            return

        try:
            if kind is InstructionKind.CREATE:
                instruction = DexInstruction.create_token(parse_create_token_data(payload))
            else:
                trade = parse_trade_data(payload)
                if self.bot_wallet is not None and trade.user == self.bot_wallet:
                    instruction = DexInstruction.bot_trade(trade)
                else:
                    instruction = DexInstruction.user_trade(trade)
        except DecodeError as e:
            logger.debug(
                "instruction_dropped",
                kind=kind.value,
                line_index=line_index,
                **e.to_dict()
            )
            self.metrics.increment_counter("instructions_dropped", labels={"kind": kind.value})
            result.diagnostics.append(DecodeDiagnostic(kind=kind, error=e, line_index=line_index))
            return

        self.metrics.increment_counter("instructions_decoded", labels={"kind": kind.value})
        result.instructions.append(instruction)
