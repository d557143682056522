"""
Event classifier: turns DexInstructions into DomainEvents

Stamps the ledger slot onto every record and attributes trades:
the user of the first CreateToken in a transaction is the dev, and that
dev's later trades in the same transaction become NEW_DEV_TRADE.
"""

import dataclasses
from typing import Iterable, List, Optional, Sequence

from solders.pubkey import Pubkey

from pumplog.core.events import DexInstruction, DomainEvent, EventType, InstructionType
from pumplog.core.logger import get_logger
from pumplog.core.metrics import MetricsCollector, get_metrics


logger = get_logger(__name__)


class EventClassifier:
    """
    Classifies one transaction's instructions

    No state survives between classify() calls: the dev address is a
    local of each call.

    Usage:
        classifier = EventClassifier()
        events = classifier.classify(instructions, slot=301_234_567)
    """

    def __init__(self, metrics: Optional[MetricsCollector] = None):
        self.metrics = metrics or get_metrics()

    def classify(
        self,
        instructions: Iterable[DexInstruction],
        slot: int,
        signature: Optional[str] = None
    ) -> List[DomainEvent]:
        """
        Classify one transaction's instructions in order

        Args:
            instructions: Instructions from LogFilter, in completion order
            slot: Ledger slot of the transaction
            signature: Transaction signature to tag events with (optional)

        Returns:
            DomainEvents in the same order (OTHER instructions are skipped)
        """
        events: List[DomainEvent] = []
        dev_address: Optional[Pubkey] = None

        for instruction in instructions:
            if instruction.info is None or instruction.instruction_type is InstructionType.OTHER:
                continue

            # Decoded records are copied so callers' instructions stay untouched
            info = dataclasses.replace(instruction.info, slot=slot)

            if instruction.instruction_type is InstructionType.CREATE_TOKEN:
                if dev_address is None:
                    dev_address = info.user
                event_type = EventType.NEW_TOKEN
            elif instruction.instruction_type is InstructionType.BOT_TRADE:
                event_type = EventType.NEW_BOT_TRADE
            elif dev_address is not None and info.user == dev_address:
                event_type = EventType.NEW_DEV_TRADE
                logger.debug(
                    "dev_trade_detected",
                    mint=info.mint,
                    dev=dev_address,
                    is_buy=info.is_buy,
                    slot=slot
                )
            else:
                event_type = EventType.NEW_USER_TRADE

            events.append(DomainEvent(event_type=event_type, data=info, signature=signature))
            self.metrics.increment_counter("domain_events", labels={"type": event_type.value})

        return events

    def classify_errors(
        self,
        messages: Sequence[str],
        signature: Optional[str] = None
    ) -> List[DomainEvent]:
        """Wrap decode failure messages as ERROR events"""
        events = [DomainEvent.error(message, signature=signature) for message in messages]
        if events:
            self.metrics.increment_counter(
                "domain_events",
                value=len(events),
                labels={"type": EventType.ERROR.value}
            )
        return events
