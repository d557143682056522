"""
Transaction log processor
Runs scan -> classify for each transaction delivered by a polling or streaming source
"""

import inspect
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable, Iterable, List, Optional, Sequence

from solders.pubkey import Pubkey

from pumplog.core.account_cache import AccountCache
from pumplog.core.bonding_curve import BondingCurveState
from pumplog.core.classifier import EventClassifier
from pumplog.core.config import PUMP_FUN_PROGRAM, ScannerConfig
from pumplog.core.events import DexInstruction, DomainEvent, TradeInfo
from pumplog.core.log_filter import LogFilter
from pumplog.core.logger import get_logger
from pumplog.core.metrics import get_metrics


logger = get_logger(__name__)
metrics = get_metrics()


EventCallback = Callable[[DomainEvent], Any]


@dataclass
class TransactionLogs:
    """
    One transaction's complete log set, as delivered by a collaborator

    Attributes:
        signature: Transaction signature
        slot: Ledger slot the transaction landed in
        logs: All log lines, in emission order
        err: Execution error reported by the runtime (None on success)
        received_at: When the transaction was received
    """
    signature: str
    slot: int
    logs: List[str]
    err: Optional[Any] = None
    received_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_rpc_response(cls, response: dict, signature: Optional[str] = None) -> "TransactionLogs":
        """
        Build from a getTransaction JSON-RPC result

        Accepts either the full response ({"result": {...}}) or the result body.
        """
        result = response.get("result", response) or {}
        meta = result.get("meta") or {}
        transaction = result.get("transaction") or {}
        signatures = transaction.get("signatures") if isinstance(transaction, dict) else None

        return cls(
            signature=signature or (signatures[0] if signatures else ""),
            slot=result.get("slot", 0),
            logs=list(meta.get("logMessages") or []),
            err=meta.get("err")
        )


@dataclass
class ProcessorStats:
    """
    Processing statistics

    Attributes:
        transactions_seen: Transactions handed to the processor
        transactions_skipped: Failed transactions not scanned
        events_emitted: Domain events delivered
        instructions_dropped: Instructions lost to decode errors
        callback_errors: Callback invocations that raised
    """
    transactions_seen: int = 0
    transactions_skipped: int = 0
    events_emitted: int = 0
    instructions_dropped: int = 0
    callback_errors: int = 0


class LogEventProcessor:
    """
    Turns transaction logs into DomainEvents

    Each transaction is scanned and classified independently; the only
    shared state is the statistics block (lock-guarded) and the optional
    injected curve cache.

    Usage:
        processor = LogEventProcessor(ScannerConfig(bot_wallet=my_wallet))

        def on_event(event: DomainEvent):
            if event.event_type is EventType.NEW_TOKEN:
                ...

        processor.process_transaction(tx, on_event)
    """

    def __init__(
        self,
        config: Optional[ScannerConfig] = None,
        curve_cache: Optional[AccountCache] = None
    ):
        """
        Initialize processor

        Args:
            config: Scanner configuration (optional)
            curve_cache: Cache updated with each trade's post-trade reserves, keyed by mint
        """
        self.config = config or ScannerConfig()
        self.curve_cache = curve_cache
        self.log_filter = LogFilter(
            program_id=self.config.program_id,
            bot_wallet=self.config.bot_wallet
        )
        self.classifier = EventClassifier()
        self._stats = ProcessorStats()
        self._stats_lock = threading.Lock()

        logger.info(
            "log_processor_initialized",
            program_id=self.config.program_id,
            bot_wallet=self.config.bot_wallet,
            emit_decode_errors=self.config.emit_decode_errors
        )

    def process_transaction(
        self,
        tx: TransactionLogs,
        callback: Optional[EventCallback] = None
    ) -> List[DomainEvent]:
        """
        Scan and classify one transaction

        Args:
            tx: Transaction logs
            callback: Called once per event, in completion order (optional)

        Returns:
            The classified events
        """
        self._bump(transactions_seen=1)

        if tx.err is not None and self.config.skip_failed_transactions:
            logger.debug("transaction_skipped", signature=tx.signature, reason="failed")
            metrics.increment_counter("transactions_skipped", labels={"reason": "failed"})
            self._bump(transactions_skipped=1)
            return []

        result = self.log_filter.scan(tx.logs)
        events = self.classifier.classify(result.instructions, tx.slot, signature=tx.signature)

        if result.diagnostics:
            logger.warning(
                "instructions_dropped",
                signature=tx.signature,
                slot=tx.slot,
                count=len(result.diagnostics),
                errors=[d.to_dict() for d in result.diagnostics]
            )
            self._bump(instructions_dropped=len(result.diagnostics))
            if self.config.emit_decode_errors:
                events.extend(self.classifier.classify_errors(
                    [str(d.error) for d in result.diagnostics],
                    signature=tx.signature
                ))

        if result.final_depth != 0:
            logger.debug(
                "unbalanced_invocations",
                signature=tx.signature,
                final_depth=result.final_depth
            )

        if self.curve_cache is not None:
            self._update_curve_cache(events)

        for event in events:
            if callback is not None:
                self._invoke_callback(callback, event)

        self._bump(events_emitted=len(events))
        return events

    def process_batch(
        self,
        transactions: Iterable[TransactionLogs],
        callback: Optional[EventCallback] = None
    ) -> List[DomainEvent]:
        """Process transactions in order; one bad transaction never stops the batch"""
        events: List[DomainEvent] = []
        for tx in transactions:
            events.extend(self.process_transaction(tx, callback))
        return events

    async def run(
        self,
        source: AsyncIterator[TransactionLogs],
        callback: EventCallback
    ) -> ProcessorStats:
        """
        Consume a stream of complete transactions

        The source must yield each transaction's full log set at once.
        Callback may be a plain or an async function.

        Returns:
            Statistics when the source is exhausted
        """
        logger.info("log_stream_started")

        async for tx in source:
            events = self.process_transaction(tx)
            for event in events:
                try:
                    outcome = callback(event)
                    if inspect.isawaitable(outcome):
                        await outcome
                except Exception as e:
                    self._callback_failed(event, e)

        stats = self.get_stats()
        logger.info("log_stream_ended", **stats.__dict__)
        return stats

    def get_stats(self) -> ProcessorStats:
        """Snapshot of processing statistics"""
        with self._stats_lock:
            return ProcessorStats(**self._stats.__dict__)

    def _invoke_callback(self, callback: EventCallback, event: DomainEvent) -> None:
        try:
            callback(event)
        except Exception as e:
            self._callback_failed(event, e)

    def _callback_failed(self, event: DomainEvent, error: Exception) -> None:
        logger.error(
            "callback_error",
            error=str(error),
            error_type=type(error).__name__,
            event_type=event.event_type.value,
            signature=event.signature
        )
        metrics.increment_counter("callback_errors")
        self._bump(callback_errors=1)

    def _update_curve_cache(self, events: Sequence[DomainEvent]) -> None:
        for event in events:
            if isinstance(event.data, TradeInfo):
                self.curve_cache.put(event.data.mint, BondingCurveState.from_trade(event.data))

    def _bump(self, **counts: int) -> None:
        with self._stats_lock:
            for name, value in counts.items():
                setattr(self._stats, name, getattr(self._stats, name) + value)


def process_logs(
    signature: str,
    logs: Sequence[str],
    callback: Callable[[str, DexInstruction], Any],
    bot_wallet: Optional[Pubkey] = None,
    program_id: str = PUMP_FUN_PROGRAM
) -> None:
    """
    Deliver a transaction's raw instructions to a callback, tagged with its signature

    No classification or slot stamping happens here.
    """
    for instruction in LogFilter(program_id=program_id, bot_wallet=bot_wallet).parse_instruction(logs):
        callback(signature, instruction)
