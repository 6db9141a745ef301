from datetime import datetime
from typing import Callable, Dict, List, NamedTuple

__all__ = [
    'event_bus', 'ENTRIES_ADDED', 'PAYMENT_CONFIRMED', 'OVERDUE_ALERT', 'Event', 'EventBus',
    'register_default_handlers',
]


class Event(NamedTuple):
    name: str
    ts: str
    payload: dict


class EventBus:
    def __init__(self):
        self._subscribers: Dict[str, List[Callable[[Event, dict], dict]]] = {}

    def subscribe(self, name: str, handler: Callable[[Event, dict], dict]) -> None:
        self._subscribers.setdefault(name, [])
        if handler not in self._subscribers[name]:
            self._subscribers[name].append(handler)

    def publish(self, name: str, payload: dict) -> List[dict]:
        if name not in self._subscribers:
            return []

        event = Event(name=name, ts=datetime.now().isoformat(), payload=payload)
        return [handler(event, payload) for handler in self._subscribers[name]]

    def unsubscribe(self, name: str, handler: Callable[[Event, dict], dict]) -> None:
        if handler in self._subscribers.get(name, []):
            self._subscribers[name].remove(handler)


ENTRIES_ADDED = "ENTRIES_ADDED"
PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED"
OVERDUE_ALERT = "OVERDUE_ALERT"

event_bus = EventBus()


def entries_added_handler(event: Event, payload: dict) -> dict:
    count = payload.get("count", 0)
    if count > 1:
        suffix = f" ({payload['frequency']})" if payload.get("frequency") else ""
        return {"message": f"{count} lançamentos gerados{suffix}"}
    return {"message": "Lançamento salvo"}


def truncated_series_handler(event: Event, payload: dict) -> dict:
    if payload.get("truncated"):
        return {"warning": f"Série limitada a {payload.get('count', 0)} lançamentos"}
    return {}


def payment_confirmed_handler(event: Event, payload: dict) -> dict:
    verb = "Pagamento" if payload.get("kind") == "expense" else "Recebimento"
    return {"message": f"{verb} confirmado em {payload.get('settled_on', '')}".strip()}


def overdue_alert_handler(event: Event, payload: dict) -> dict:
    count = payload.get("count", 0)
    if count <= 0:
        return {}
    total = payload.get("total", 0)
    return {
        "alert": f"{count} recebimento(s) em atraso",
        "count": count,
        "total": total,
    }


def register_default_handlers(bus: EventBus = event_bus) -> None:
    bus.subscribe(ENTRIES_ADDED, entries_added_handler)
    bus.subscribe(ENTRIES_ADDED, truncated_series_handler)
    bus.subscribe(PAYMENT_CONFIRMED, payment_confirmed_handler)
    bus.subscribe(OVERDUE_ALERT, overdue_alert_handler)


register_default_handlers()
