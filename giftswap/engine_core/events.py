"""
Domain Events - The canonical record of what an action did.

The reducer emits these alongside the new state. Every consumer (sound
cues, presentation animation, logging, the WebSocket feed) subscribes to
the same event types instead of inspecting raw row changes.
"""

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, ClassVar


@dataclass(frozen=True)
class DomainEvent:
    """Base class. Subclasses set event_type."""
    event_type: ClassVar[str] = "event"

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["event_type"] = self.event_type
        return data


@dataclass(frozen=True)
class PlayerJoined(DomainEvent):
    event_type: ClassVar[str] = "player_joined"
    player_id: str
    display_name: str
    order_index: int


@dataclass(frozen=True)
class PlayerRemoved(DomainEvent):
    event_type: ClassVar[str] = "player_removed"
    player_id: str
    released_gift_id: str | None = None


@dataclass(frozen=True)
class PhaseChanged(DomainEvent):
    event_type: ClassVar[str] = "phase_changed"
    previous_phase: str
    phase: str


@dataclass(frozen=True)
class GameStarted(DomainEvent):
    event_type: ClassVar[str] = "game_started"
    first_player_id: str
    turn_order: tuple[str, ...]


@dataclass(frozen=True)
class TurnChanged(DomainEvent):
    event_type: ClassVar[str] = "turn_changed"
    player_id: str
    previous_player_id: str | None = None


@dataclass(frozen=True)
class GiftPicked(DomainEvent):
    event_type: ClassVar[str] = "gift_picked"
    player_id: str
    gift_id: str
    gift_name: str
    released_gift_id: str | None = None


@dataclass(frozen=True)
class GiftStolen(DomainEvent):
    event_type: ClassVar[str] = "gift_stolen"
    player_id: str
    gift_id: str
    gift_name: str
    victim_id: str | None
    steal_count: int
    steals_remaining: int
    is_locked: bool
    swapped_gift_id: str | None = None


@dataclass(frozen=True)
class FinalRoundStarted(DomainEvent):
    event_type: ClassVar[str] = "final_round_started"
    player_id: str


@dataclass(frozen=True)
class GameEnded(DomainEvent):
    event_type: ClassVar[str] = "game_ended"
    reason: str
    player_id: str | None = None


@dataclass(frozen=True)
class GiftCatalogChanged(DomainEvent):
    """Gifts were added, edited or removed during setup."""
    event_type: ClassVar[str] = "gift_catalog_changed"
    change: str
    gift_ids: tuple[str, ...]


@dataclass(frozen=True)
class ConfigChanged(DomainEvent):
    event_type: ClassVar[str] = "config_changed"
    fields: tuple[str, ...]
