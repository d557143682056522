"""
Simple whole-transaction scanners without depth tracking

Kept for parity with older consumers. They look at every payload line in
the transaction regardless of which program emitted it, and they differ
in which entry wins when several match:

- scan_latest_pump_events: the LAST matching payload in log order
- scan_ray_log:            the EARLIEST decodable payload in log order

Undecodable lines are skipped.
"""

from typing import Callable, Optional, Sequence, Tuple

from pumplog.core.decoders import decode_base64, decode_event, decode_swap_base_in
from pumplog.core.errors import DecodeError
from pumplog.core.events import CreateTokenInfo, SwapBaseInLog, TradeInfo
from pumplog.core.extractors import extract_program_data, extract_ray_log
from pumplog.core.logger import get_logger


logger = get_logger(__name__)


def scan_latest_pump_events(
    logs: Sequence[str]
) -> Tuple[Optional[CreateTokenInfo], Optional[TradeInfo]]:
    """
    Find the last CreateEvent and the last TradeEvent in the logs

    Walks the lines backwards and keeps the first hit of each shape, which
    is the latest one in emission order. Shapes are told apart by their
    event discriminator.

    Returns:
        (create_info, trade_info), either may be None
    """
    create_info: Optional[CreateTokenInfo] = None
    trade_info: Optional[TradeInfo] = None

    for line in reversed(logs):
        if create_info is not None and trade_info is not None:
            break

        data = extract_program_data(line)
        if data is None:
            continue

        try:
            event = decode_event(decode_base64(data))
        except DecodeError as e:
            logger.debug("legacy_payload_skipped", **e.to_dict())
            continue

        if isinstance(event, CreateTokenInfo) and create_info is None:
            create_info = event
        elif isinstance(event, TradeInfo) and trade_info is None:
            trade_info = event

    return create_info, trade_info


def scan_ray_log(
    logs: Sequence[str],
    decoder: Callable[[bytes], SwapBaseInLog] = decode_swap_base_in
) -> Optional[SwapBaseInLog]:
    """
    Find the earliest decodable ray_log payload

    Args:
        logs: Transaction log lines in emission order
        decoder: Decoder applied to the raw payload bytes

    Returns:
        Decoded record or None
    """
    for line in logs:
        data = extract_ray_log(line)
        if data is None:
            continue

        try:
            return decoder(decode_base64(data, "ray_log"))
        except DecodeError as e:
            logger.debug("ray_log_skipped", **e.to_dict())

    return None
