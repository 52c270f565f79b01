"""Data models for the gate controller."""

from .call import PendingCall
from .window import AccessWindow, WindowState

__all__ = ["AccessWindow", "PendingCall", "WindowState"]
