"""Single-threaded scheduling of one-shot timers and refresh callbacks.

Nothing here runs on its own: the display host calls ``refresh`` once per
screen refresh with the current time, and every due callback is run to
completion before the next one starts.

"""
import heapq
import itertools


class Timer:
    """Handle for a one-shot callback scheduled on an EventLoop."""
    def __init__(self, deadline, callback):

        self.deadline = deadline
        self.callback = callback
        self.fired = False
        self.cancelled = False

    @property
    def active(self):
        return not (self.fired or self.cancelled)

    def cancel(self):
        """Prevent the callback from running; a no-op once fired."""
        if not self.fired:
            self.cancelled = True


class EventLoop:
    """Cooperative dispatcher for timers and display refresh callbacks.

    Parameters
    ----------
    clock : callable
        Returns the current time in milliseconds; used as the base for
        ``call_later`` deadlines.

    """
    def __init__(self, clock):

        self.clock = clock
        self._timers = []
        self._refresh = {}
        self._counter = itertools.count()

    def call_later(self, delay, callback):
        """Run ``callback()`` at the first dispatch ``delay`` ms from now."""
        timer = Timer(self.clock() + delay, callback)
        heapq.heappush(self._timers,
                       (timer.deadline, next(self._counter), timer))
        return timer

    def cancel(self, timer):
        if timer is not None:
            timer.cancel()

    def request_refresh(self, callback):
        """Run ``callback(timestamp)`` on the next display refresh."""
        handle = next(self._counter)
        self._refresh[handle] = callback
        return handle

    def cancel_refresh(self, handle):
        self._refresh.pop(handle, None)

    @property
    def pending_timers(self):
        return sum(t.active for _, _, t in self._timers)

    @property
    def pending_refreshes(self):
        return len(self._refresh)

    def run_timers(self, now):
        """Fire every active timer whose deadline has passed, in order."""
        while self._timers and self._timers[0][0] <= now:
            _, _, timer = heapq.heappop(self._timers)
            if timer.active:
                timer.fired = True
                timer.callback()

    def refresh(self, timestamp):
        """Dispatch one display refresh at ``timestamp`` ms.

        Due timers run first, then the refresh callbacks that were requested
        before this dispatch began. Callbacks requested while dispatching
        are deferred to the next refresh; callbacks cancelled while
        dispatching do not run.

        """
        self.run_timers(timestamp)
        batch = list(self._refresh)
        for handle in batch:
            callback = self._refresh.pop(handle, None)
            if callback is not None:
                callback(timestamp)
