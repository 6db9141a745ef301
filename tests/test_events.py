from medfin.events import (
    ENTRIES_ADDED,
    OVERDUE_ALERT,
    PAYMENT_CONFIRMED,
    EventBus,
    register_default_handlers,
)


def make_bus():
    bus = EventBus()
    register_default_handlers(bus)
    return bus


def test_entries_added_single_and_series():
    bus = make_bus()
    single = bus.publish(ENTRIES_ADDED, {"count": 1})
    assert single[0] == {"message": "Lançamento salvo"}
    series = bus.publish(ENTRIES_ADDED, {"count": 13, "frequency": "Mensal"})
    assert series[0] == {"message": "13 lançamentos gerados (Mensal)"}
    assert series[1] == {}


def test_truncated_series_warning():
    bus = make_bus()
    results = bus.publish(ENTRIES_ADDED, {"count": 100, "frequency": "Semanal", "truncated": True})
    assert results[1] == {"warning": "Série limitada a 100 lançamentos"}


def test_payment_confirmed_messages():
    bus = make_bus()
    assert bus.publish(PAYMENT_CONFIRMED, {"kind": "expense", "settled_on": "10/05/2024"}) == [
        {"message": "Pagamento confirmado em 10/05/2024"}
    ]
    assert bus.publish(PAYMENT_CONFIRMED, {"kind": "income", "settled_on": "10/05/2024"})[0]["message"].startswith(
        "Recebimento"
    )


def test_overdue_alert_only_when_something_is_late():
    bus = make_bus()
    assert bus.publish(OVERDUE_ALERT, {"count": 0}) == [{}]
    res = bus.publish(OVERDUE_ALERT, {"count": 2, "total": 300})
    assert res[0]["alert"] == "2 recebimento(s) em atraso"
    assert res[0]["total"] == 300


def test_subscribe_is_idempotent_and_unsubscribe():
    bus = EventBus()
    calls = []

    def handler(event, payload):
        calls.append(event.name)
        return {}

    bus.subscribe("X", handler)
    bus.subscribe("X", handler)
    bus.publish("X", {})
    assert calls == ["X"]

    bus.unsubscribe("X", handler)
    assert bus.publish("X", {}) == []
    assert bus.publish("UNKNOWN", {}) == []
