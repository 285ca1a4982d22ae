from chatrelay.events import (
    ExchangeEvent,
    ExchangeFailed,
    ExchangeStarted,
    ResponseArrived,
    ResponseArriving,
)


class ExchangeListener:
    """Receives exchange lifecycle notifications.

    Override the hooks you need; the defaults do nothing.  Hooks are
    called on the producer's task and should return quickly.
    """

    def exchange_started(self, event: ExchangeStarted) -> None:
        pass

    def response_arriving(self, event: ResponseArriving) -> None:
        pass

    def response_arrived(self, event: ResponseArrived) -> None:
        pass

    def exchange_failed(self, event: ExchangeFailed) -> None:
        pass


class CollectingListener(ExchangeListener):
    """Listener that records every event in order."""

    def __init__(self):
        self.events: list[ExchangeEvent] = []

    def exchange_started(self, event):
        self.events.append(event)

    def response_arriving(self, event):
        self.events.append(event)

    def response_arrived(self, event):
        self.events.append(event)

    def exchange_failed(self, event):
        self.events.append(event)

    def of_type(self, event_type: type) -> list[ExchangeEvent]:
        return [e for e in self.events if isinstance(e, event_type)]
