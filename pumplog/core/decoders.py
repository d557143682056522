"""
Binary decoders for Pump.fun and Raydium event payloads

One decoder per event shape. Each takes the full byte buffer plus a
header_size: pump.fun "Program data:" payloads start with an 8-byte event
discriminator that is skipped without inspection, Raydium ray_log payloads
have no header. Both the log filter and discriminator dispatch go through
these same functions, so there is a single layout definition per struct.

Layouts (little-endian, after the header):

    CreateEvent:   name(str) symbol(str) uri(str) mint(32) bonding_curve(32) user(32)
    TradeEvent:    mint(32) sol_amount(u64) token_amount(u64) is_buy(u8) user(32)
                   timestamp(i64) virtual_sol_reserves(u64) virtual_token_reserves(u64)
                   real_sol_reserves(u64) real_token_reserves(u64)
    CompleteEvent: user(32) mint(32) bonding_curve(32) timestamp(u64)
    SwapBaseInLog: log_type(u8) amount_in minimum_out direction user_source
                   pool_coin pool_pc out_amount (all u64)

str = u32 length prefix followed by that many UTF-8 bytes. Trailing bytes
after the last field are ignored: newer program versions append fields.
"""

import base64
import binascii
import struct
from typing import Callable, Dict, Tuple, Union

from solders.pubkey import Pubkey

from pumplog.core.errors import (
    Base64DecodeError,
    InvalidUtf8Error,
    TruncatedDataError,
    UnknownEventError,
)
from pumplog.core.events import CompleteInfo, CreateTokenInfo, SwapBaseInLog, TradeInfo


EVENT_DISCRIMINATOR_SIZE = 8

# Anchor event discriminators: sha256("event:<Name>")[:8]
CREATE_EVENT_DISCRIMINATOR = bytes([27, 114, 169, 77, 222, 235, 99, 118])
TRADE_EVENT_DISCRIMINATOR = bytes([189, 219, 127, 211, 78, 230, 97, 238])
COMPLETE_EVENT_DISCRIMINATOR = bytes([95, 114, 97, 156, 212, 46, 152, 8])

PUBKEY_SIZE = 32

# Fixed payload sizes (excluding header), used for minimum length checks
TRADE_EVENT_SIZE = 32 + 8 + 8 + 1 + 32 + 8 + 8 + 8 + 8 + 8  # 121
COMPLETE_EVENT_SIZE = 32 * 3 + 8  # 104
SWAP_BASE_IN_SIZE = 1 + 8 * 7  # 57


class ByteCursor:
    """
    Bounds-checked little-endian reader over a byte buffer

    Every read checks the remaining length first and raises
    TruncatedDataError naming the struct and field, so a short buffer can
    never produce a partial struct.
    """

    def __init__(self, data: bytes, struct_name: str, offset: int = 0):
        self.data = bytes(data)
        self.struct_name = struct_name
        self.offset = 0
        if offset:
            self.skip(offset, "header")

    @property
    def remaining(self) -> int:
        return len(self.data) - self.offset

    def _take(self, size: int, field: str) -> bytes:
        if self.offset + size > len(self.data):
            raise TruncatedDataError(
                f"{self.struct_name}: data too short for {field}: "
                f"need {size} bytes at offset {self.offset}, have {self.remaining}",
                struct_name=self.struct_name,
                field=field,
                offset=self.offset
            )
        chunk = self.data[self.offset:self.offset + size]
        self.offset += size
        return chunk

    def skip(self, size: int, field: str) -> None:
        self._take(size, field)

    def read_u8(self, field: str) -> int:
        return self._take(1, field)[0]

    def read_bool(self, field: str) -> bool:
        return self.read_u8(field) != 0

    def read_u32(self, field: str) -> int:
        return struct.unpack('<I', self._take(4, field))[0]

    def read_u64(self, field: str) -> int:
        return struct.unpack('<Q', self._take(8, field))[0]

    def read_i64(self, field: str) -> int:
        return struct.unpack('<q', self._take(8, field))[0]

    def read_pubkey(self, field: str) -> Pubkey:
        return Pubkey.from_bytes(self._take(PUBKEY_SIZE, field))

    def read_string(self, field: str) -> str:
        """Read a u32 length-prefixed UTF-8 string"""
        length = self.read_u32(f"{field} length")
        start = self.offset
        raw = self._take(length, field)
        try:
            return raw.decode('utf-8')
        except UnicodeDecodeError as e:
            raise InvalidUtf8Error(
                f"{self.struct_name}: invalid UTF-8 in {field}: {e}",
                struct_name=self.struct_name,
                field=field,
                offset=start
            ) from e


def decode_base64(data: str, struct_name: str = "payload") -> bytes:
    """
    Decode a standard-alphabet base64 string

    Raises:
        Base64DecodeError: If the text is not valid base64
    """
    try:
        return base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise Base64DecodeError(
            f"{struct_name}: failed to decode base64: {e}",
            struct_name=struct_name,
            field="base64"
        ) from e


def decode_create_token(data: bytes, header_size: int = EVENT_DISCRIMINATOR_SIZE) -> CreateTokenInfo:
    """Decode a CreateEvent payload (slot left at 0)"""
    cursor = ByteCursor(data, "CreateTokenInfo", header_size)
    name = cursor.read_string("name")
    symbol = cursor.read_string("symbol")
    uri = cursor.read_string("uri")
    mint = cursor.read_pubkey("mint")
    bonding_curve = cursor.read_pubkey("bonding_curve")
    user = cursor.read_pubkey("user")

    return CreateTokenInfo(
        name=name,
        symbol=symbol,
        uri=uri,
        mint=mint,
        bonding_curve=bonding_curve,
        user=user
    )


def decode_trade(data: bytes, header_size: int = EVENT_DISCRIMINATOR_SIZE) -> TradeInfo:
    """Decode a TradeEvent payload (slot left at 0)"""
    cursor = ByteCursor(data, "TradeInfo", header_size)
    if cursor.remaining < TRADE_EVENT_SIZE:
        raise TruncatedDataError(
            f"TradeInfo: data too short: need {TRADE_EVENT_SIZE} bytes "
            f"after header, have {cursor.remaining}",
            struct_name="TradeInfo",
            field="mint",
            offset=cursor.offset
        )

    return TradeInfo(
        mint=cursor.read_pubkey("mint"),
        sol_amount=cursor.read_u64("sol_amount"),
        token_amount=cursor.read_u64("token_amount"),
        is_buy=cursor.read_bool("is_buy"),
        user=cursor.read_pubkey("user"),
        timestamp=cursor.read_i64("timestamp"),
        virtual_sol_reserves=cursor.read_u64("virtual_sol_reserves"),
        virtual_token_reserves=cursor.read_u64("virtual_token_reserves"),
        real_sol_reserves=cursor.read_u64("real_sol_reserves"),
        real_token_reserves=cursor.read_u64("real_token_reserves")
    )


def decode_complete(data: bytes, header_size: int = EVENT_DISCRIMINATOR_SIZE) -> CompleteInfo:
    """Decode a CompleteEvent payload"""
    cursor = ByteCursor(data, "CompleteInfo", header_size)
    return CompleteInfo(
        user=cursor.read_pubkey("user"),
        mint=cursor.read_pubkey("mint"),
        bonding_curve=cursor.read_pubkey("bonding_curve"),
        timestamp=cursor.read_u64("timestamp")
    )


def decode_swap_base_in(data: bytes, header_size: int = 0) -> SwapBaseInLog:
    """Decode a Raydium swap_base_in ray_log payload"""
    cursor = ByteCursor(data, "SwapBaseInLog", header_size)
    return SwapBaseInLog(
        log_type=cursor.read_u8("log_type"),
        amount_in=cursor.read_u64("amount_in"),
        minimum_out=cursor.read_u64("minimum_out"),
        direction=cursor.read_u64("direction"),
        user_source=cursor.read_u64("user_source"),
        pool_coin=cursor.read_u64("pool_coin"),
        pool_pc=cursor.read_u64("pool_pc"),
        out_amount=cursor.read_u64("out_amount")
    )


def parse_create_token_data(data: str) -> CreateTokenInfo:
    """Decode a base64 "Program data:" string as a CreateEvent"""
    return decode_create_token(decode_base64(data, "CreateTokenInfo"))


def parse_trade_data(data: str) -> TradeInfo:
    """Decode a base64 "Program data:" string as a TradeEvent"""
    return decode_trade(decode_base64(data, "TradeInfo"))


PumpEvent = Union[CreateTokenInfo, TradeInfo, CompleteInfo]

EVENT_DECODERS: Dict[bytes, Tuple[str, Callable[[bytes, int], PumpEvent]]] = {
    CREATE_EVENT_DISCRIMINATOR: ("CreateEvent", decode_create_token),
    TRADE_EVENT_DISCRIMINATOR: ("TradeEvent", decode_trade),
    COMPLETE_EVENT_DISCRIMINATOR: ("CompleteEvent", decode_complete),
}


def decode_event(data: bytes) -> PumpEvent:
    """
    Decode a full pump.fun event buffer by its leading discriminator

    Raises:
        TruncatedDataError: If the buffer is shorter than a discriminator
        UnknownEventError: If the discriminator is not a known event
    """
    if len(data) < EVENT_DISCRIMINATOR_SIZE:
        raise TruncatedDataError(
            f"event: data too short for discriminator: have {len(data)} bytes",
            struct_name="event",
            field="discriminator",
            offset=0
        )

    discriminator = bytes(data[:EVENT_DISCRIMINATOR_SIZE])
    entry = EVENT_DECODERS.get(discriminator)
    if entry is None:
        raise UnknownEventError(
            f"event: unknown discriminator {discriminator.hex()}",
            struct_name="event",
            field="discriminator",
            offset=0
        )

    _, decoder = entry
    return decoder(data, EVENT_DISCRIMINATOR_SIZE)


def event_name(data: bytes) -> str:
    """Return the event name for a buffer's discriminator, or 'unknown'"""
    entry = EVENT_DECODERS.get(bytes(data[:EVENT_DISCRIMINATOR_SIZE]))
    return entry[0] if entry else "unknown"
