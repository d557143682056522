"""
Unit tests for EventClassifier
Tests slot stamping, dev attribution and bot trade routing
"""

import pytest

from pumplog.core.classifier import EventClassifier
from pumplog.core.decoders import decode_create_token, decode_trade
from pumplog.core.events import DexInstruction, DomainEvent, EventType


@pytest.fixture
def classifier(metrics_collector):
    return EventClassifier(metrics=metrics_collector)


@pytest.fixture
def create_instruction(make_create_payload):
    return DexInstruction.create_token(decode_create_token(make_create_payload()))


@pytest.fixture
def trade_by(make_trade_payload):
    """Factory for USER_TRADE instructions by a given wallet"""

    def _build(user, **kwargs):
        return DexInstruction.user_trade(decode_trade(make_trade_payload(user=user, **kwargs)))

    return _build


def test_create_then_dev_buy(classifier, create_instruction, trade_by, dev_wallet):
    """Test the creator's buy in the same transaction is a dev trade"""
    events = classifier.classify([create_instruction, trade_by(dev_wallet)], slot=1234)

    assert [e.event_type for e in events] == [EventType.NEW_TOKEN, EventType.NEW_DEV_TRADE]
    assert all(e.data.slot == 1234 for e in events)


def test_create_then_other_user_buy(classifier, create_instruction, trade_by, user_wallet):
    """Test a non-creator buy is a user trade"""
    events = classifier.classify([create_instruction, trade_by(user_wallet)], slot=1)

    assert events[1].event_type is EventType.NEW_USER_TRADE


def test_dev_trade_before_create_is_user_trade(classifier, create_instruction, trade_by, dev_wallet):
    """Test attribution only applies after the create is seen"""
    events = classifier.classify([trade_by(dev_wallet), create_instruction], slot=1)

    assert [e.event_type for e in events] == [EventType.NEW_USER_TRADE, EventType.NEW_TOKEN]


def test_trade_without_create_is_user_trade(classifier, trade_by, dev_wallet):
    """Test no dev exists without a create"""
    events = classifier.classify([trade_by(dev_wallet)], slot=1)

    assert events[0].event_type is EventType.NEW_USER_TRADE


def test_first_create_sets_dev(classifier, make_create_payload, trade_by, dev_wallet, user_wallet):
    """Test a second create in the same transaction does not move the dev"""
    second_create = DexInstruction.create_token(decode_create_token(make_create_payload(user=user_wallet)))
    first_create = DexInstruction.create_token(decode_create_token(make_create_payload()))

    events = classifier.classify(
        [first_create, second_create, trade_by(user_wallet), trade_by(dev_wallet)],
        slot=1
    )

    assert [e.event_type for e in events] == [
        EventType.NEW_TOKEN,
        EventType.NEW_TOKEN,
        EventType.NEW_USER_TRADE,
        EventType.NEW_DEV_TRADE,
    ]


def test_bot_trade_stays_bot_trade(classifier, create_instruction, make_trade_payload, dev_wallet):
    """Test BOT_TRADE is never reattributed, even when the bot is the creator"""
    bot_trade = DexInstruction.bot_trade(decode_trade(make_trade_payload(user=dev_wallet)))

    events = classifier.classify([create_instruction, bot_trade], slot=5)

    assert events[1].event_type is EventType.NEW_BOT_TRADE
    assert events[1].data.slot == 5


def test_other_instructions_skipped(classifier, trade_by, user_wallet):
    """Test OTHER instructions produce no events"""
    events = classifier.classify([DexInstruction.other(), trade_by(user_wallet)], slot=1)

    assert len(events) == 1


def test_input_records_not_mutated(classifier, create_instruction):
    """Test slot stamping works on a copy"""
    classifier.classify([create_instruction], slot=999)

    assert create_instruction.info.slot == 0


def test_no_state_between_calls(classifier, create_instruction, trade_by, dev_wallet):
    """Test the dev address is forgotten after each transaction"""
    classifier.classify([create_instruction], slot=1)

    events = classifier.classify([trade_by(dev_wallet)], slot=2)

    assert events[0].event_type is EventType.NEW_USER_TRADE


def test_signature_tagging(classifier, create_instruction):
    """Test events carry the transaction signature"""
    events = classifier.classify([create_instruction], slot=1, signature="5xSig")

    assert events[0].signature == "5xSig"
    assert events[0].to_dict()["signature"] == "5xSig"


def test_event_to_dict(classifier, create_instruction, mint):
    """Test rendered event flattens record fields with base58 addresses"""
    event = classifier.classify([create_instruction], slot=77)[0]

    rendered = event.to_dict()

    assert rendered["event"] == "new_token"
    assert rendered["mint"] == str(mint)
    assert rendered["slot"] == 77
    assert rendered["name"] == "Pepe Coin"


def test_domain_event_counters(classifier, metrics_collector, create_instruction, trade_by, dev_wallet):
    """Test one counter increment per emitted event type"""
    classifier.classify([create_instruction, trade_by(dev_wallet)], slot=1)

    assert metrics_collector.get_counter("domain_events", labels={"type": "new_token"}) == 1
    assert metrics_collector.get_counter("domain_events", labels={"type": "new_dev_trade"}) == 1


def test_classify_errors(classifier, metrics_collector):
    """Test decode messages become ERROR events"""
    events = classifier.classify_errors(["bad payload", "worse payload"], signature="sig")

    assert [e.event_type for e in events] == [EventType.ERROR, EventType.ERROR]
    assert events[0].message == "bad payload"
    assert events[0].data is None
    assert events[1].to_dict() == {"event": "error", "signature": "sig", "message": "worse payload"}
    assert metrics_collector.get_counter("domain_events", labels={"type": "error"}) == 2


def test_error_event_constructor():
    event = DomainEvent.error("boom")

    assert event.event_type is EventType.ERROR
    assert event.to_dict() == {"event": "error", "message": "boom"}
