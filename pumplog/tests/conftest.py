"""
Pytest configuration and shared fixtures
Payload builders and golden event buffers used across the unit tests
"""

import base64
import struct
from typing import Callable, List

import pytest
from solders.pubkey import Pubkey

from pumplog.core.config import PUMP_FUN_PROGRAM
from pumplog.core.decoders import (
    COMPLETE_EVENT_DISCRIMINATOR,
    CREATE_EVENT_DISCRIMINATOR,
    TRADE_EVENT_DISCRIMINATOR,
)
from pumplog.core.metrics import MetricsCollector


# Real TradeEvent captured from mainnet "Program data:" output (a 0.0099 SOL buy)
GOLDEN_TRADE_EVENT_B64 = (
    "vdt/007mYe7I8IfZQ6+jBAoAmmv/1o3+u9m+TUw2Uv1rcm+hcT3+3+APlwAAAAAAXQDhxzAAAAABg64azHvFh4FI"
    "1PaNOySDuVixmy3+JhT4oavmR+Ht/XJx1O9oAAAAAHrn7BQJAAAAnCgmYJLuAgB6O8kYAgAAAJyQExQB8AEArRHm"
    "pPwpRKT6glG++BVCbhv7KMa2ZGZ3YHxq2fVmpkZfAAAAAAAAAGJvAQAAAAAAfWmiKn7ojhsEOf8c903/n0tVSKxy"
    "DUYWM4BEbO9/UcQeAAAAAAAAAAR0AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA"
)

# CreateEvent for name="ABC", symbol="X", uri="http://u", mint=0x01.., bonding_curve=0x02.., user=0x03..
GOLDEN_CREATE_EVENT = (
    bytes.fromhex("1b72a94ddeeb6376")
    + bytes.fromhex("03000000") + b"ABC"
    + bytes.fromhex("01000000") + b"X"
    + bytes.fromhex("08000000") + b"http://u"
    + bytes([1]) * 32
    + bytes([2]) * 32
    + bytes([3]) * 32
)

OTHER_PROGRAM = "ComputeBudget111111111111111111111111111111"
RAYDIUM_AMM = "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8"


def _pubkey(fill: int) -> Pubkey:
    return Pubkey.from_bytes(bytes([fill]) * 32)


@pytest.fixture
def mint() -> Pubkey:
    return _pubkey(0x11)


@pytest.fixture
def bonding_curve() -> Pubkey:
    return _pubkey(0x22)


@pytest.fixture
def dev_wallet() -> Pubkey:
    return _pubkey(0xA1)


@pytest.fixture
def user_wallet() -> Pubkey:
    return _pubkey(0xB2)


@pytest.fixture
def bot_wallet() -> Pubkey:
    return _pubkey(0xC3)


@pytest.fixture
def make_create_payload(mint, bonding_curve, dev_wallet) -> Callable[..., bytes]:
    """Factory for raw CreateEvent buffers (discriminator included)"""

    def _build(
        name: str = "Pepe Coin",
        symbol: str = "PEPE",
        uri: str = "https://ipfs.io/ipfs/QmPepe",
        mint: Pubkey = mint,
        bonding_curve: Pubkey = bonding_curve,
        user: Pubkey = dev_wallet,
        discriminator: bytes = CREATE_EVENT_DISCRIMINATOR
    ) -> bytes:
        out = bytearray(discriminator)
        for text in (name, symbol, uri):
            encoded = text.encode("utf-8")
            out += struct.pack("<I", len(encoded)) + encoded
        out += bytes(mint) + bytes(bonding_curve) + bytes(user)
        return bytes(out)

    return _build


@pytest.fixture
def make_trade_payload(mint, user_wallet) -> Callable[..., bytes]:
    """Factory for raw TradeEvent buffers (discriminator included)"""

    def _build(
        user: Pubkey = user_wallet,
        mint: Pubkey = mint,
        sol_amount: int = 1_000_000_000,
        token_amount: int = 34_612_903_225_806,
        is_buy: bool = True,
        timestamp: int = 1_718_000_000,
        virtual_sol_reserves: int = 31_000_000_000,
        virtual_token_reserves: int = 1_038_387_096_774_194,
        real_sol_reserves: int = 1_000_000_000,
        real_token_reserves: int = 758_487_096_774_194,
        discriminator: bytes = TRADE_EVENT_DISCRIMINATOR
    ) -> bytes:
        return (
            discriminator
            + bytes(mint)
            + struct.pack("<QQ?", sol_amount, token_amount, is_buy)
            + bytes(user)
            + struct.pack(
                "<qQQQQ",
                timestamp,
                virtual_sol_reserves,
                virtual_token_reserves,
                real_sol_reserves,
                real_token_reserves
            )
        )

    return _build


@pytest.fixture
def make_complete_payload(mint, bonding_curve, user_wallet) -> Callable[..., bytes]:
    """Factory for raw CompleteEvent buffers (discriminator included)"""

    def _build(timestamp: int = 1_718_000_500) -> bytes:
        return (
            COMPLETE_EVENT_DISCRIMINATOR
            + bytes(user_wallet)
            + bytes(mint)
            + bytes(bonding_curve)
            + struct.pack("<Q", timestamp)
        )

    return _build


@pytest.fixture
def b64() -> Callable[[bytes], str]:
    return lambda raw: base64.b64encode(raw).decode("ascii")


@pytest.fixture
def pump_logs(b64) -> Callable[..., List[str]]:
    """
    Factory for one top-level pump.fun invocation's log lines

    Usage:
        pump_logs("Buy", trade_payload) ->
            ["Program 6EF8... invoke [1]", "Program log: Instruction: Buy",
             "Program data: <b64>", "Program 6EF8... success"]
    """

    def _build(instruction: str, *payloads: bytes, depth: int = 1) -> List[str]:
        lines = [
            f"Program {PUMP_FUN_PROGRAM} invoke [{depth}]",
            f"Program log: Instruction: {instruction}",
        ]
        lines += [f"Program data: {b64(p)}" for p in payloads]
        lines += [
            f"Program {PUMP_FUN_PROGRAM} consumed 35000 of 200000 compute units",
            f"Program {PUMP_FUN_PROGRAM} success",
        ]
        return lines

    return _build


@pytest.fixture
def metrics_collector() -> MetricsCollector:
    """Fresh metrics collector for each test"""
    collector = MetricsCollector(enable_histogram=True)
    yield collector
    collector.reset()
