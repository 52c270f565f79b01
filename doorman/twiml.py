"""TwiML documents returned to Twilio's voice webhooks."""

from __future__ import annotations

from typing import Optional
from xml.etree.ElementTree import Element, SubElement, tostring

RINGBACK_AUDIO = "/static/us_ringback_tone.mp3"
OPEN_TONE_AUDIO = "/static/9.wav"


def _render(response_el: Element) -> str:
    return tostring(response_el, encoding="unicode", xml_declaration=True)


def play(url: str, loop: int = 1, pause: Optional[int] = None) -> str:
    """<Response>[<Pause length=pause/>]<Play loop=loop>url</Play></Response>"""
    response_el = Element("Response")
    if pause:
        pause_el = SubElement(response_el, "Pause")
        pause_el.set("length", str(pause))
    play_el = SubElement(response_el, "Play")
    play_el.set("loop", str(loop))
    play_el.text = url
    return _render(response_el)


def dial(number: str) -> str:
    """<Response><Dial>number</Dial></Response>"""
    response_el = Element("Response")
    dial_el = SubElement(response_el, "Dial")
    dial_el.text = number
    return _render(response_el)


def ringback() -> str:
    """Keep the caller listening while the owner decides."""
    return play(RINGBACK_AUDIO, loop=5)


def open_gate() -> str:
    """Play the tone the call box treats as "open"."""
    return play(OPEN_TONE_AUDIO, loop=2, pause=1)
