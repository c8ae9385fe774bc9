from solders.pubkey import Pubkey

from curvesdk.parser import parse_event, parse_events


def test_token_purchase():
    customer, referrer = Pubkey.new_unique(), Pubkey.new_unique()
    line = f"Program log: TokenPurchase: Customer={customer}, ETH=1000, Tokens=42, ReferredBy={referrer}"

    event = parse_event(line)

    assert event.name == "TokenPurchase"
    assert event["Customer"] == customer
    assert event["ETH"] == 1000
    assert event["Tokens"] == 42
    assert event["ReferredBy"] == referrer


def test_parse_events_keeps_order():
    a, b = Pubkey.new_unique(), Pubkey.new_unique()
    logs = [
        "Program 8yCmCyhDsLzof54Pbuj2dBxAKSyLosdFcR7Aov894NJk invoke [1]",
        "Program log: Instruction: Transfer",
        f"Program log: Transfer: From={a}, To={b}, Tokens=7",
        f"Program log: Withdraw: Customer={a}, ETH=3",
        "Program 8yCmCyhDsLzof54Pbuj2dBxAKSyLosdFcR7Aov894NJk success",
    ]

    events = parse_events(logs)

    assert [e.name for e in events] == ["Transfer", "Withdraw"]
    assert events[0].fields == {"From": a, "To": b, "Tokens": 7}


def test_masternode_and_sell():
    a, b = Pubkey.new_unique(), Pubkey.new_unique()
    assert parse_event(f"Program log: Masternode: Customer={a}, Consumer={b}, ETH=10, Bonus=1")["Bonus"] == 1
    assert parse_event(f"Program log: TokenSell: Customer={a}, Tokens=5, ETH=2")["Tokens"] == 5
    assert parse_event(f"Program log: Reinvestment: Customer={a}, ETH=9, Tokens=4")["ETH"] == 9


def test_non_events_are_ignored():
    a = Pubkey.new_unique()
    assert parse_event("Program log: Instruction: Buy") is None
    assert parse_event(f"Program data: Withdraw: Customer={a}, ETH=3") is None
    assert parse_event(f"Program log: Withdraw: Customer={a}") is None
    assert parse_event("Program log: Withdraw: Customer, ETH=3") is None
    assert parse_event("Program log: Unknown: A=1") is None
