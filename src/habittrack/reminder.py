from __future__ import annotations

import logging
import sys
import threading
from dataclasses import dataclass
from typing import Callable

from .models import Habit
from .tracker import Tracker

log = logging.getLogger(__name__)

REMINDER_INTERVAL = 10.0  # seconds

BANNER = "=" * 50


@dataclass
class Session:
    """Interactive state shared by the menu loop and the reminder ticker."""

    prompting: bool = False
    last_prompt: str = ""
    shutting_down: bool = False

    def ask(self, prompt: str, reader: Callable[[str], str] | None = None) -> str:
        self.last_prompt = prompt
        self.prompting = True
        try:
            answer = (reader or input)(prompt)
        finally:
            self.prompting = False
        return answer.strip()


class ReminderTicker:
    """
    Periodic nudge about habits still short of their weekly target.

    Fires once on start, then every `interval` seconds on a daemon thread
    until stop(). The ticker only reads the habit list and advances the
    tracker's rotation index; it never writes habits or the data file.
    """

    def __init__(self, tracker: Tracker, session: Session, interval: float = REMINDER_INTERVAL) -> None:
        self.tracker = tracker
        self.session = session
        self.interval = interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self.fire()
        self._thread = threading.Thread(target=self._run, name="habit-reminder", daemon=True)
        self._thread.start()
        log.debug("reminder ticker started (every %ss)", self.interval)

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.fire()

    def fire(self) -> Habit | None:
        if self.session.shutting_down:
            return None
        target = self.tracker.next_reminder()
        if target is None:
            return None

        sys.stdout.write("\n")
        print(BANNER)
        print(f'REMINDER: Don\'t forget "{target.name}"!')
        print(BANNER)
        if self.session.prompting and self.session.last_prompt:
            sys.stdout.write(self.session.last_prompt)
        sys.stdout.flush()
        return target

    def stop(self) -> None:
        self._stop.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=1.0)
            log.debug("reminder ticker stopped")
