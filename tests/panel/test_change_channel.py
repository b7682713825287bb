"""Tests for the change notification channel."""

from flyouts.panel import ChangeChannel, FieldChange


def test_listeners_run_in_subscription_order():
    channel = ChangeChannel()
    calls = []
    channel.subscribe(lambda change: calls.append(("first", change.name)))
    channel.subscribe(lambda change: calls.append(("second", change.name)))

    channel.publish(FieldChange("discount_type", "percentage"))

    assert calls == [("first", "discount_type"), ("second", "discount_type")]


def test_unsubscribe():
    channel = ChangeChannel()
    calls = []
    unsubscribe = channel.subscribe(calls.append)

    unsubscribe()
    unsubscribe()
    channel.publish(FieldChange("name"))

    assert calls == []
    assert channel.subscriber_count == 0


def test_nested_publish_completes_before_outer_returns():
    channel = ChangeChannel()
    order = []

    def cascade(change):
        order.append(change.name)
        if change.name == "a":
            channel.publish(FieldChange("b"))

    channel.subscribe(cascade)
    channel.publish(FieldChange("a"))

    assert order == ["a", "b"]


def test_listener_may_unsubscribe_while_publishing():
    channel = ChangeChannel()
    calls = []
    holder = {}

    def once(change):
        calls.append(change.name)
        holder["unsubscribe"]()

    holder["unsubscribe"] = channel.subscribe(once)
    channel.subscribe(lambda change: calls.append("other"))

    channel.publish(FieldChange("x"))
    channel.publish(FieldChange("y"))

    assert calls == ["x", "other", "other"]
