"""Gate controller: owns the open window and interprets the owner's SMS replies.

One GateController exists per process.  It holds:
  1. The AccessWindow (when calls are let through without asking)
  2. The PendingCall (the call waiting on a "1"/"2" reply)

Every entry point takes the lock, expires a stale window, then applies its
own effect, so a window that ended while nobody was looking is seen as
closed.  The controller performs no I/O; call actions are returned to the
web layer, which talks to Twilio after the state change is committed.

Commands (trimmed SMS body, case-sensitive):

  1                        open the gate for the pending call
  2                        connect the pending caller to the owner
  status                   describe the window
  open for <duration>      open now for a duration ("90m", "2h30m")
  open from <t1> to <t2>   open between two clock times ("11pm", "0130")
  clear                    remove the window
"""

from __future__ import annotations

import enum
import logging
import re
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from typing import Callable, Optional

from doorman.models.call import PendingCall
from doorman.models.window import AccessWindow, WindowState, instant
from doorman.timeparse import (
    DEFAULT_DATE_FORMAT,
    ParseError,
    format_timestamp,
    parse_clock_time,
    parse_duration,
)

log = logging.getLogger("doorman.controller")

HELP_TEXT = 'Invalid command: "{}"\nValid commands: open from, open for, status, clear'
NO_RULES = "No rules defined"

_OPEN_FOR = "open for"
_OPEN_FROM = re.compile(r"^open from (.+?) to (.+)$")


def redact_pii(value: str) -> str:
    """Mask PII for logging; show first 3 and last 2 chars only."""
    if not value or len(value) <= 5:
        return "***"
    return value[:3] + "***" + value[-2:]


class CallAction(str, enum.Enum):
    """What the web layer should do with the pending call."""

    NONE = "none"
    OPEN = "open"
    CONNECT = "callme"


class CommandKind(str, enum.Enum):
    PRESS_OPEN = "press_open"
    PRESS_CONNECT = "press_connect"
    STATUS = "status"
    OPEN_FOR = "open_for"
    OPEN_FROM = "open_from"
    CLEAR = "clear"
    INVALID = "invalid"


@dataclass
class CommandResult:
    """Outcome of one SMS command.

    ``reply`` is None when nothing should be sent back.  ``error`` carries
    the ParseError message when a time or duration could not be read.
    """

    kind: CommandKind
    reply: Optional[str] = None
    action: CallAction = CallAction.NONE
    call_sid: str = ""
    error: Optional[str] = None


class GateController:
    """Single owner of the gate's window and pending call.

    Typical lifecycle::

        controller = GateController(tz=ZoneInfo("America/Los_Angeles"))

        # Call arrives at the gate
        if controller.check_call("CA123", called="+15550001111"):
            ...  # window is open, play the open tone
        else:
            ...  # text the owner, play ringback

        # Owner replies by SMS
        result = controller.dispatch("open for 2h")
    """

    def __init__(
        self,
        tz: Optional[tzinfo] = None,
        date_format: str = DEFAULT_DATE_FORMAT,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._tz = tz
        self._date_format = date_format
        self._clock = clock
        self._window = AccessWindow()
        self._pending = PendingCall()
        self._lock = threading.Lock()

    # ── Helpers ────────────────────────────────────────────────

    def now(self) -> datetime:
        if self._clock is not None:
            return self._clock()
        if self._tz is None:
            return datetime.now().astimezone()
        return datetime.now(tz=self._tz)

    def format(self, dt: Optional[datetime]) -> str:
        return format_timestamp(dt, self._date_format)

    def _expire(self, now: datetime) -> None:
        start, end = self._window.start, self._window.end
        if self._window.expire(now):
            log.info("Window %s - %s has passed, clearing", self.format(start), self.format(end))

    def _rule_status(self, now: datetime) -> str:
        log.info(
            "Rules: Start %s End %s",
            self.format(self._window.start),
            self.format(self._window.end),
        )
        state = self._window.state(now)
        if state is WindowState.ACTIVE:
            return f"Gate is open until {self.format(self._window.end)}"
        if state is WindowState.SCHEDULED:
            return (
                f"Gate is open from {self.format(self._window.start)} "
                f"to {self.format(self._window.end)}"
            )
        return NO_RULES

    # ── Public API ────────────────────────────────────────────

    @property
    def window(self) -> AccessWindow:
        return self._window

    @property
    def pending_call(self) -> PendingCall:
        return self._pending

    def state(self) -> WindowState:
        with self._lock:
            now = self.now()
            self._expire(now)
            return self._window.state(now)

    def status(self) -> str:
        """Describe the window after expiring it if stale."""
        with self._lock:
            now = self.now()
            self._expire(now)
            return self._rule_status(now)

    def check_call(self, call_sid: str, called: str = "") -> bool:
        """Record an inbound call and report whether the gate is open for it.

        The call always becomes the pending call, overwriting any earlier
        one.  Returns True when ``now`` lies strictly inside the window.
        """
        with self._lock:
            now = self.now()
            self._pending.call_sid = call_sid
            self._pending.called = called
            self._expire(now)
            is_open = self._window.is_active(now)
        if is_open:
            log.info("Door is marked open, automatically opening door.")
        else:
            log.info("Door closed, call %s waiting for owner", call_sid or "<none>")
        return is_open

    def mark_opened(self) -> str:
        """The gate was opened for the pending call; forget it.

        Returns the gate number the call came in on, or "" if none was
        pending.
        """
        with self._lock:
            called = self._pending.called
            if self._pending.is_set:
                log.info("Gate opened for call %s", self._pending.call_sid)
            self._pending.clear()
        return called

    def dispatch(self, body: str) -> CommandResult:
        """Apply one SMS command and return what to reply and do."""
        text = body.strip()
        with self._lock:
            now = self.now()
            self._expire(now)
            log.info("%r - %r", text, self._pending.call_sid)

            if text == "1" and self._pending.is_set:
                return CommandResult(
                    CommandKind.PRESS_OPEN,
                    action=CallAction.OPEN,
                    call_sid=self._pending.call_sid,
                )

            if text == "2" and self._pending.is_set:
                return CommandResult(
                    CommandKind.PRESS_CONNECT,
                    action=CallAction.CONNECT,
                    call_sid=self._pending.call_sid,
                )

            if text == "status":
                return CommandResult(CommandKind.STATUS, reply=self._rule_status(now))

            if text.startswith(_OPEN_FOR):
                return self._open_for(text[len(_OPEN_FOR) + 1:], now)

            if text.startswith("open from"):
                return self._open_from(text, now)

            if text == "clear":
                self._window.clear()
                return CommandResult(CommandKind.CLEAR, reply=self._rule_status(now))

            return CommandResult(CommandKind.INVALID, reply=HELP_TEXT.format(text))

    # ── Commands ──────────────────────────────────────────────

    def _open_for(self, duration_text: str, now: datetime) -> CommandResult:
        try:
            duration = parse_duration(duration_text)
            # Elapsed time, so add in UTC: a DST change inside the window
            # must not stretch or shrink it
            end = (instant(now) + duration).astimezone(now.tzinfo)
        except (ParseError, OverflowError) as e:
            # No reply: the owner sees nothing happen
            log.warning("Unable to parse duration from %r: %s", duration_text, e)
            return CommandResult(CommandKind.OPEN_FOR, error=str(e))

        self._window.set(now, end)
        return CommandResult(CommandKind.OPEN_FOR, reply=self._rule_status(now))

    def _open_from(self, text: str, now: datetime) -> CommandResult:
        match = _OPEN_FROM.match(text)
        if match is None:
            msg = f"Can't parse open command: {text}"
            log.warning(msg)
            return CommandResult(CommandKind.OPEN_FROM, reply=msg, error=msg)

        try:
            start = parse_clock_time(match.group(1), now)
            end = parse_clock_time(match.group(2), now)
        except ParseError as e:
            log.warning("Unable to parse times from %r: %s", text, e)
            return CommandResult(CommandKind.OPEN_FROM, reply=str(e), error=str(e))

        log.info("Matched times %s - %s", start.isoformat(), end.isoformat())

        if instant(start) < instant(now):
            new_start = start + timedelta(days=1)
            log.info(
                "Start Time %s is before now %s, Adding 1 day to start time %s",
                self.format(start),
                self.format(now),
                self.format(new_start),
            )
            start = new_start
        # Twice when both roll: "11pm to 1am" at 11:30pm ends the day after tomorrow
        while instant(end) < instant(start):
            end = end + timedelta(days=1)

        self._window.set(start, end)
        return CommandResult(CommandKind.OPEN_FROM, reply=self._rule_status(now))
