from pyhyprconfig import events


def test_emit_calls_subscribers_in_order():
    received = []
    events.on("option_set", lambda *a: received.append(("first", a)))
    events.on("option_set", lambda *a: received.append(("second", a)))
    events.emit("option_set", "general:gaps_in", "5")
    assert received == [
        ("first", ("general:gaps_in", "5")),
        ("second", ("general:gaps_in", "5")),
    ]


def test_off_and_clear():
    received = []

    def cb():
        received.append(True)

    events.on("cache_cleared", cb)
    events.off("cache_cleared", cb)
    events.off("cache_cleared", cb)
    events.emit("cache_cleared")
    events.on("cache_cleared", cb)
    events.clear()
    events.emit("cache_cleared")
    events.emit("never_registered")
    assert received == []
