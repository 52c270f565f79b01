"""Doorman: answer the gate call box by text message."""

__version__ = "0.1.0"
