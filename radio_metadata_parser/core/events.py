"""
Event channels exposed to parser and demuxer subscribers
"""

from typing import Any, Callable, Dict, Iterable, List

from .logger import get_logger

logger = get_logger(__name__)

Listener = Callable[..., Any]


class EventChannel:
    """Callback registry with one listener list per event name.
    
    Only the event names given at construction can be subscribed to or
    emitted. Listeners run synchronously in registration order; an exception
    raised by a listener is logged and does not stop the remaining listeners
    or the emitter.
    """
    
    def __init__(self, events: Iterable[str]):
        self._listeners: Dict[str, List[Listener]] = {name: [] for name in events}
    
    @property
    def events(self) -> List[str]:
        return list(self._listeners)
    
    def _get(self, event: str) -> List[Listener]:
        try:
            return self._listeners[event]
        except KeyError:
            raise ValueError(f"Unknown event {event!r}, expected one of {self.events}") from None
    
    def on(self, event: str, listener: Listener) -> Listener:
        """Subscribe `listener` to `event`; returns the listener so it can be used as a decorator"""
        self._get(event).append(listener)
        return listener
    
    def once(self, event: str, listener: Listener) -> Listener:
        """Subscribe `listener` for a single emission of `event`"""
        def wrapper(*args, **kwargs):
            self.off(event, wrapper)
            return listener(*args, **kwargs)
        wrapper.listener = listener
        self._get(event).append(wrapper)
        return listener
    
    def off(self, event: str, listener: Listener) -> None:
        """Unsubscribe `listener` (or a `once` wrapper around it) from `event`"""
        listeners = self._get(event)
        for registered in list(listeners):
            if registered == listener or getattr(registered, 'listener', None) == listener:
                listeners.remove(registered)
                return
    
    def listener_count(self, event: str) -> int:
        return len(self._get(event))
    
    def emit(self, event: str, *args) -> bool:
        """Call every listener of `event`; returns False when nobody is listening"""
        listeners = list(self._get(event))
        for listener in listeners:
            try:
                listener(*args)
            except Exception as e:
                logger.error("Event listener failed", event=event, error=str(e), exc_info=True)
        return bool(listeners)
