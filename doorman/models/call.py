"""Pydantic model tracking the call waiting on the owner's reply."""

from pydantic import BaseModel


class PendingCall(BaseModel):
    """The most recent inbound call, if the gate has not been opened for it.

    Only one call is tracked; a new call overwrites the previous one.
    """

    call_sid: str = ""
    called: str = ""

    @property
    def is_set(self) -> bool:
        return bool(self.call_sid)

    def clear(self) -> None:
        self.call_sid = ""
        self.called = ""
