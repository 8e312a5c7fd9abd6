"""
Connection lifecycle for periodic "now playing" lookups on ICY radio streams
"""

import asyncio
import enum
from typing import Any, Awaitable, Callable, List, Mapping, Optional, Set, Union

import requests

from .config import ConfigStore
from .demuxer import MetadataDemuxer
from .errors import ParserClosedError, TransportError, wrap_transport_error
from .events import EventChannel, Listener
from .http import IcyResponse, open_icy_connection
from .logger import get_logger
from .scheduler import RequestScheduler, ScheduledTask

logger = get_logger(__name__)

Connector = Callable[..., Awaitable[IcyResponse]]

# Finished attempts kept for inspection; open ones are always kept
ATTEMPT_HISTORY = 10


class State(enum.Enum):
    IDLE = 'idle'
    REQUESTING = 'requesting'
    STREAMING = 'streaming'
    EMPTY_HANDLED = 'empty_handled'
    ERROR_HANDLED = 'error_handled'


class Outcome(enum.Enum):
    TRANSPORT_ERROR = 'transport_error'
    EMPTY_STREAM = 'empty_stream'
    METADATA_INTERVAL = 'metadata_interval'


class ConnectionAttempt:
    """One request to the station and whatever it produced"""
    
    def __init__(self, number: int, url: str):
        self.number = number
        self.url = url
        self.response: Optional[IcyResponse] = None
        self.demuxer: Optional[MetadataDemuxer] = None
        self.outcome: Optional[Outcome] = None
        self.error: Optional[TransportError] = None
        self.state = State.IDLE
    
    @property
    def metaint(self) -> Optional[int]:
        return self.demuxer.metaint if self.demuxer else None
    
    @property
    def open(self) -> bool:
        return self.response is not None and not self.response.destroyed
    
    def teardown(self) -> None:
        if self.response is not None:
            self.response.destroy()
        if self.demuxer is not None:
            self.demuxer.close()
    
    def __repr__(self):
        outcome = self.outcome.value if self.outcome else None
        return f"<ConnectionAttempt #{self.number} {self.url} outcome={outcome} state={self.state.value}>"


class RadioParser:
    """Polls a radio station for its current ICY metadata.
    
    Construction queues the first request immediately on the event loop. Each
    request ends in one of three outcomes, and each outcome decides when the
    next request happens:
    
    - transport error: emit ``error``, retry after ``error_interval``
    - no ``icy-metaint`` header: emit ``empty``, retry after ``empty_interval``
    - ``icy-metaint`` present: emit ``stream`` with a MetadataDemuxer fed from
      the response; on its first metadata frame emit ``metadata`` and request
      again after ``metadata_interval``
    
    Follow-up requests after ``empty`` and ``metadata`` are only queued while
    ``auto_update`` is on and ``keep_listen`` is off. With ``keep_listen`` the
    stream connection is left open and keeps delivering ``metadata`` events.
    """
    
    EVENTS = ('stream', 'metadata', 'empty', 'error')
    
    def __init__(self, options: Union[str, Mapping[str, Any]],
                 loop: Optional[asyncio.AbstractEventLoop] = None,
                 connector: Connector = open_icy_connection):
        self._loop = loop or asyncio.get_running_loop()
        self._config = ConfigStore(options)
        self._connector = connector
        self.events = EventChannel(self.EVENTS)
        self.scheduler = RequestScheduler(self._config, self._make_request, self._loop)
        self.attempts: List[ConnectionAttempt] = []
        self.attempt_count = 0
        self._tasks: Set[asyncio.Task] = set()
        self._closed = False
        
        self.queue_request()
    
    # -- configuration
    
    def get_config(self, key: Optional[str] = None) -> Any:
        """Get the configuration snapshot, or one value by key"""
        return self._config.get_config(key)
    
    def set_config(self, config: Union[str, Mapping[str, Any]]) -> 'RadioParser':
        """Shallow-merge new values over the current configuration"""
        self._config.set_config(config)
        logger.debug("Configuration updated", config=self._config.snapshot().to_dict())
        return self
    
    # -- events
    
    def on(self, event: str, listener: Listener) -> Listener:
        return self.events.on(event, listener)
    
    def once(self, event: str, listener: Listener) -> Listener:
        return self.events.once(event, listener)
    
    def off(self, event: str, listener: Listener) -> None:
        self.events.off(event, listener)
    
    # -- scheduling
    
    def queue_request(self, delay: Optional[float] = 0) -> ScheduledTask:
        """Queue a request to the station after `delay` seconds"""
        if self._closed:
            raise ParserClosedError("Parser is closed")
        return self.scheduler.queue_request(delay)
    
    @property
    def closed(self) -> bool:
        return self._closed
    
    @property
    def state(self) -> State:
        """Overall state; a live stream outranks requests started alongside it"""
        if self._closed:
            return State.IDLE
        states = {attempt.state for attempt in self.attempts}
        for state in (State.STREAMING, State.REQUESTING, State.EMPTY_HANDLED, State.ERROR_HANDLED):
            if state in states:
                return state
        return State.IDLE
    
    @property
    def active_attempts(self) -> List[ConnectionAttempt]:
        """Attempts whose connection is still open"""
        return [attempt for attempt in self.attempts if attempt.open]
    
    def _spawn(self, coro) -> asyncio.Task:
        task = self._loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
    
    def _make_request(self) -> None:
        if self._closed:
            return
        self.attempt_count += 1
        attempt = ConnectionAttempt(self.attempt_count, self.get_config('url'))
        recent = self.attempts[-(ATTEMPT_HISTORY - 1):]
        self.attempts = [a for a in self.attempts if a.open and a not in recent] + recent + [attempt]
        self._spawn(self._run_attempt(attempt))
    
    # -- attempt lifecycle
    
    async def _run_attempt(self, attempt: ConnectionAttempt) -> None:
        attempt.state = State.REQUESTING
        logger.info("Requesting stream", url=attempt.url, attempt=attempt.number)
        
        try:
            response = await self._connector(attempt.url, timeout=self.get_config('connect_timeout'))
        except (requests.RequestException, OSError) as e:
            self._on_request_error(attempt, wrap_transport_error(e, attempt.url))
            return
        
        attempt.response = response
        if self._closed:
            attempt.teardown()
            return
        self._on_request_response(attempt)
    
    def _on_request_response(self, attempt: ConnectionAttempt) -> None:
        response = attempt.response
        metaint = response.metaint
        logger.info("Response received", url=attempt.url, status=response.status,
                    reason=response.reason, metaint=metaint, icy=response.is_icy)
        
        if metaint:
            attempt.outcome = Outcome.METADATA_INTERVAL
            attempt.demuxer = MetadataDemuxer(metaint)
            attempt.demuxer.on('metadata', lambda metadata: self._on_metadata(attempt, metadata))
            attempt.state = State.STREAMING
            self._spawn(self._pump(attempt))
            self.events.emit('stream', attempt.demuxer)
        else:
            attempt.outcome = Outcome.EMPTY_STREAM
            self._destroy_response(attempt)
            attempt.state = State.EMPTY_HANDLED
            self.scheduler.queue_next_request(self.get_config('empty_interval'), reason='empty')
            self.events.emit('empty')
            self._idle(attempt)
    
    def _on_metadata(self, attempt: ConnectionAttempt, metadata: Mapping[str, str]) -> None:
        logger.info("Metadata received", url=attempt.url, attempt=attempt.number, metadata=dict(metadata))
        self._destroy_response(attempt)
        self.scheduler.queue_next_request(self.get_config('metadata_interval'), reason='metadata')
        self.events.emit('metadata', metadata)
        self._idle(attempt)
    
    def _on_request_error(self, attempt: ConnectionAttempt, error: TransportError) -> None:
        if self._closed:
            return
        attempt.outcome = Outcome.TRANSPORT_ERROR
        attempt.error = error
        attempt.state = State.ERROR_HANDLED
        
        if self.events.listener_count('error'):
            logger.warning("Request failed", url=attempt.url, attempt=attempt.number, error=str(error))
        else:
            logger.error("Request failed and no error listener is registered",
                         url=attempt.url, attempt=attempt.number, error=str(error))
        
        self.scheduler.queue_retry()
        self.events.emit('error', error)
        self._idle(attempt)
    
    def _idle(self, attempt: ConnectionAttempt) -> None:
        # A kept-open stream stays the controller's ongoing activity
        if not attempt.open:
            attempt.state = State.IDLE
    
    def _destroy_response(self, attempt: ConnectionAttempt) -> bool:
        """Tear the connection down unless keep_listen holds it open"""
        if self.get_config('keep_listen'):
            return False
        attempt.teardown()
        logger.debug("Connection torn down", url=attempt.url, attempt=attempt.number)
        return True
    
    async def _pump(self, attempt: ConnectionAttempt) -> None:
        """Route response bytes into the demuxer until the stream ends or is torn down"""
        response, demuxer = attempt.response, attempt.demuxer
        error = None
        try:
            async for chunk in response.iter_chunks():
                demuxer.feed(chunk)
        except (OSError, asyncio.IncompleteReadError) as e:
            error = e
        
        if response.destroyed or self._closed:
            return
        
        # The server ended the stream on its own
        attempt.teardown()
        if error is None:
            error = TransportError(f"{attempt.url}: stream closed by server")
        self._on_request_error(attempt, wrap_transport_error(error, attempt.url))
    
    # -- shutdown
    
    def close(self) -> None:
        """Stop for good: cancel queued requests and in-flight attempts, close open streams"""
        if self._closed:
            return
        self._closed = True
        
        cancelled = self.scheduler.cancel()
        for task in list(self._tasks):
            task.cancel()
        for attempt in self.active_attempts:
            attempt.teardown()
        for attempt in self.attempts:
            attempt.state = State.IDLE
        logger.info("Parser closed", url=self.get_config('url'), cancelled_requests=cancelled)
    
    async def aclose(self) -> None:
        """Close and wait for cancelled tasks to finish"""
        tasks = list(self._tasks)
        self.close()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
    
    async def __aenter__(self) -> 'RadioParser':
        return self
    
    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
