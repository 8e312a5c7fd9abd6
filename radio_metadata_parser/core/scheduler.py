"""
Timer-driven triggering of connection attempts
"""

import asyncio
from typing import Callable, Optional

from .config import ConfigStore
from .logger import get_logger

logger = get_logger(__name__)


class ScheduledTask:
    """A pending connection attempt that fires once after `delay` seconds"""
    
    def __init__(self, delay: float, reason: str, handle: asyncio.TimerHandle):
        self.delay = delay
        self.reason = reason
        self.handle = handle
        self.fired = False
    
    @property
    def cancelled(self) -> bool:
        return self.handle.cancelled()
    
    @property
    def pending(self) -> bool:
        return not self.fired and not self.cancelled
    
    def when(self) -> float:
        """Loop time at which the task fires"""
        return self.handle.when()
    
    def cancel(self) -> None:
        self.handle.cancel()
    
    def __repr__(self):
        state = 'fired' if self.fired else 'cancelled' if self.cancelled else 'pending'
        return f"<ScheduledTask delay={self.delay} reason={self.reason!r} {state}>"


class RequestScheduler:
    """Arranges when the next connection attempt happens.
    
    Tasks are never cancelled by the scheduler itself: queueing a new attempt
    while another is pending leaves both armed. `cancel` exists for callers
    that tear the parser down.
    """
    
    def __init__(self, config: ConfigStore, trigger: Callable[[], None],
                 loop: Optional[asyncio.AbstractEventLoop] = None):
        self._config = config
        self._trigger = trigger
        self._loop = loop or asyncio.get_running_loop()
        self.last: Optional[ScheduledTask] = None
        self._tasks = []
    
    @property
    def pending(self):
        """All tasks that have neither fired nor been cancelled, oldest first"""
        self._tasks = [task for task in self._tasks if task.pending]
        return list(self._tasks)
    
    def queue_request(self, delay: Optional[float] = 0, reason: str = 'manual') -> ScheduledTask:
        """Arm a one-shot timer that starts a connection attempt after `delay` seconds"""
        delay = delay or 0
        
        def fire():
            task.fired = True
            if task in self._tasks:
                self._tasks.remove(task)
            self._trigger()
        
        handle = self._loop.call_later(delay, fire)
        task = ScheduledTask(delay, reason, handle)
        self.last = task
        # Drop tasks cancelled directly through ScheduledTask.cancel
        self._tasks = [t for t in self._tasks if not t.cancelled]
        self._tasks.append(task)
        logger.debug("Request queued", delay=delay, reason=reason)
        return task
    
    def queue_next_request(self, delay: Optional[float] = None, reason: str = 'outcome') -> Optional[ScheduledTask]:
        """Queue the follow-up attempt after a stream or empty outcome.
        
        Only arms a timer when auto_update is on and keep_listen is off. A falsy
        delay falls back to error_interval.
        """
        delay = delay or self._config.get_config('error_interval')
        
        if self._config.get_config('auto_update') and not self._config.get_config('keep_listen'):
            return self.queue_request(delay, reason)
        
        logger.debug("Next request suppressed", reason=reason,
                     auto_update=self._config.get_config('auto_update'),
                     keep_listen=self._config.get_config('keep_listen'))
        return None
    
    def queue_retry(self, reason: str = 'error') -> ScheduledTask:
        """Queue the attempt that follows a transport error; never gated"""
        return self.queue_request(self._config.get_config('error_interval'), reason)
    
    def cancel(self) -> int:
        """Cancel every pending task; returns how many were cancelled"""
        pending = self.pending
        for task in pending:
            task.cancel()
        self._tasks = []
        if pending:
            logger.debug("Scheduled requests cancelled", count=len(pending))
        return len(pending)
