import logging

logger = logging.getLogger(__name__)


class ListenerSet:
    """Callbacks notified in subscription order.

    A failing listener is logged and skipped; the rest are still notified.
    """

    def __init__(self):
        self._listeners = []

    def __len__(self):
        return len(self._listeners)

    def add(self, listener):
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self, *args):
        for listener in list(self._listeners):
            try:
                listener(*args)
            except Exception:
                logger.exception("Listener %r failed", listener)
