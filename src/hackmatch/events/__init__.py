"""Event system for HackMatch agent communication."""

from .bus import EventBus
from .models import EventType, PlatformEvent
from .payloads import PAYLOAD_MODELS, parse_payload

__all__ = ["EventBus", "EventType", "PlatformEvent", "PAYLOAD_MODELS", "parse_payload"]
