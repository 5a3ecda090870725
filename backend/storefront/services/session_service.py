# Overview: Inactivity timer that ends a dashboard session after a fixed idle interval.

"""
Idle session timeout.

Every authenticated request counts as activity. A request arriving after
SESSION_IDLE_TIMEOUT of inactivity signs the session out and is redirected
to the sign-in screen instead of being served.
"""
from __future__ import annotations

from datetime import datetime, timedelta
from typing import Callable

from storefront.timestamps import utcnow

SESSION_IDLE_TIMEOUT = timedelta(minutes=30)


class IdleTimer:
    def __init__(self, timeout: timedelta = SESSION_IDLE_TIMEOUT, clock: Callable[[], datetime] = utcnow):
        self.timeout = timeout
        self.clock = clock
        self.last_activity = clock()

    def touch(self) -> None:
        self.last_activity = self.clock()

    def idle_for(self) -> timedelta:
        return self.clock() - self.last_activity

    def expired(self) -> bool:
        return self.idle_for() > self.timeout
