"""
Game State - Serializable snapshot of one gift-exchange session.

Design principles:
- Immutable-friendly: all mutations return new state
- Serializable: to_dict()/from_dict() round-trip through JSON
- Single owner: the ledger store holds the authoritative copy; the
  reducer only ever sees and returns snapshots
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace, asdict
from typing import Any
from enum import Enum

from .errors import GiftNotFound, InvalidConfig, PlayerNotFound


SESSION_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"
SESSION_CODE_LENGTH = 8

MIN_TURN_SECONDS = 10
MAX_TURN_SECONDS = 600

INT_CONFIG_FIELDS = ("max_steals_per_gift", "turn_timer_seconds")
BOOL_CONFIG_FIELDS = ("randomize_order", "allow_immediate_stealback", "turn_timer_enabled")


class GamePhase(Enum):
    """Session-level phase. Only the SessionStateMachine changes it."""
    SETUP = "setup"
    LOBBY = "lobby"
    ACTIVE = "active"
    PAUSED = "paused"
    ENDED = "ended"


class GiftStatus(Enum):
    """Visibility/lock state of a gift."""
    HIDDEN = "hidden"
    REVEALED = "revealed"
    LOCKED = "locked"

    @classmethod
    def parse(cls, value: str | GiftStatus) -> GiftStatus:
        """Parse a stored status. Legacy "stolen" rows are revealed gifts."""
        if isinstance(value, GiftStatus):
            return value
        if value == "stolen":
            return cls.REVEALED
        return cls(value)


class ActionKind(Enum):
    """Types of entries in the append-only action log."""
    PICK = "pick"
    STEAL = "steal"


@dataclass(frozen=True)
class GameConfig:
    """Per-session rule settings, fixed once the game starts."""
    max_steals_per_gift: int = 2
    randomize_order: bool = True
    allow_immediate_stealback: bool = False
    turn_timer_enabled: bool = False
    turn_timer_seconds: int = 60

    def merged(self, updates: dict[str, Any]) -> GameConfig:
        """Return a validated copy with the given fields replaced."""
        unknown = set(updates) - set(self.to_dict())
        if unknown:
            raise InvalidConfig(f"Unknown config fields: {sorted(unknown)}")
        config = replace(self, **updates)
        config.validate()
        return config

    def validate(self) -> None:
        for name in INT_CONFIG_FIELDS:
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidConfig(f"{name} must be an integer", field=name, value=repr(value))
        for name in BOOL_CONFIG_FIELDS:
            value = getattr(self, name)
            if not isinstance(value, bool):
                raise InvalidConfig(f"{name} must be true or false", field=name, value=repr(value))
        if self.max_steals_per_gift < 1:
            raise InvalidConfig("max_steals_per_gift must be at least 1")
        if not MIN_TURN_SECONDS <= self.turn_timer_seconds <= MAX_TURN_SECONDS:
            raise InvalidConfig(
                f"turn_timer_seconds must be between {MIN_TURN_SECONDS} and {MAX_TURN_SECONDS}"
            )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GameConfig:
        return cls(**data)


@dataclass
class PlayerState:
    """A participant in one session."""
    player_id: str
    display_name: str
    order_index: int
    current_gift_id: str | None = None
    has_completed_turn: bool = False
    is_admin: bool = False
    avatar_seed: str = ""
    joined_at: float = 0.0

    def to_record(self, session_id: str) -> dict[str, Any]:
        """Row shape as persisted in the players table."""
        return {
            "id": self.player_id,
            "session_id": session_id,
            "display_name": self.display_name,
            "order_index": self.order_index,
            "current_gift_id": self.current_gift_id,
            "is_admin": self.is_admin,
            "has_completed_turn": self.has_completed_turn,
            "avatar_seed": self.avatar_seed,
            "joined_at": self.joined_at,
        }


@dataclass
class GiftState:
    """
    A gift in the exchange.

    Invariants:
    - HIDDEN gifts have no owner
    - LOCKED gifts have steal_count >= max_steals_per_gift and never
      change owner again
    """
    gift_id: str
    name: str
    image_url: str = ""
    link: str | None = None
    description: str | None = None
    status: GiftStatus = GiftStatus.HIDDEN
    steal_count: int = 0
    current_owner_id: str | None = None
    position: int | None = None

    @property
    def is_hidden(self) -> bool:
        return self.status == GiftStatus.HIDDEN

    @property
    def is_locked(self) -> bool:
        return self.status == GiftStatus.LOCKED

    def to_record(self, session_id: str) -> dict[str, Any]:
        """Row shape as persisted in the gifts table."""
        return {
            "id": self.gift_id,
            "session_id": session_id,
            "name": self.name,
            "image_url": self.image_url,
            "link": self.link,
            "description": self.description,
            "status": self.status.value,
            "steal_count": self.steal_count,
            "current_owner_id": self.current_owner_id,
            "position": self.position,
        }


@dataclass(frozen=True)
class ActionRecord:
    """One entry of the append-only pick/steal log. Never updated."""
    action_id: str
    session_id: str
    player_id: str
    action_type: ActionKind
    gift_id: str
    previous_owner_id: str | None = None
    sequence: int = 0
    created_at: float = 0.0

    def to_record(self) -> dict[str, Any]:
        """Row shape as persisted in the game_actions table."""
        return {
            "id": self.action_id,
            "session_id": self.session_id,
            "player_id": self.player_id,
            "action_type": self.action_type.value,
            "gift_id": self.gift_id,
            "previous_owner_id": self.previous_owner_id,
            "sequence": self.sequence,
            "created_at": self.created_at,
        }

    @classmethod
    def from_record(cls, data: dict[str, Any]) -> ActionRecord:
        return cls(
            action_id=data["id"],
            session_id=data["session_id"],
            player_id=data["player_id"],
            action_type=ActionKind(data["action_type"]),
            gift_id=data["gift_id"],
            previous_owner_id=data.get("previous_owner_id"),
            sequence=data.get("sequence", 0),
            created_at=data.get("created_at", 0.0),
        )


@dataclass
class GameState:
    """
    Complete session state at a point in time.

    This is the canonical state that the engine operates on.
    All state changes go through the reducer.
    """
    session_id: str
    session_code: str

    # Session phase and turn tracking
    phase: GamePhase = GamePhase.SETUP
    active_player_id: str | None = None
    first_player_id: str | None = None
    round_index: int = 0
    is_final_round: bool = False
    turn_started_at: float | None = None

    config: GameConfig = field(default_factory=GameConfig)

    players: list[PlayerState] = field(default_factory=list)
    gifts: list[GiftState] = field(default_factory=list)

    # Append-only history (for steal-back checks, audit and export)
    actions: list[ActionRecord] = field(default_factory=list)

    # Optimistic concurrency: bumped by exactly one on every commit
    version: int = 0

    random_seed: int | None = None
    created_at: float = 0.0

    @classmethod
    def create(
        cls,
        session_id: str,
        session_code: str,
        admin_id: str,
        admin_name: str,
        config: GameConfig | None = None,
        created_at: float = 0.0,
        admin_avatar_seed: str | None = None,
    ) -> GameState:
        """Create a fresh session in SETUP with its single admin player."""
        admin = PlayerState(
            player_id=admin_id,
            display_name=admin_name,
            order_index=1,
            is_admin=True,
            avatar_seed=admin_avatar_seed or f"{admin_name}-{int(created_at * 1000)}",
            joined_at=created_at,
        )
        return cls(
            session_id=session_id,
            session_code=session_code,
            config=config or GameConfig(),
            players=[admin],
            created_at=created_at,
        )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def players_in_order(self) -> list[PlayerState]:
        return sorted(self.players, key=lambda p: p.order_index)

    @property
    def gifts_in_order(self) -> list[GiftState]:
        return sorted(
            self.gifts,
            key=lambda g: (g.position is None, g.position or 0, g.gift_id),
        )

    @property
    def admin(self) -> PlayerState | None:
        for p in self.players:
            if p.is_admin:
                return p
        return None

    @property
    def num_players(self) -> int:
        return len(self.players)

    @property
    def turn_deadline(self) -> float | None:
        """Advisory deadline for the active player, if the timer is on."""
        if not self.config.turn_timer_enabled or self.turn_started_at is None:
            return None
        if self.phase != GamePhase.ACTIVE:
            return None
        return self.turn_started_at + self.config.turn_timer_seconds

    def get_player(self, player_id: str) -> PlayerState | None:
        """Get player by ID."""
        for p in self.players:
            if p.player_id == player_id:
                return p
        return None

    def require_player(self, player_id: str | None) -> PlayerState:
        player = self.get_player(player_id) if player_id else None
        if player is None:
            raise PlayerNotFound(f"Player {player_id} not found", player_id=player_id)
        return player

    def get_gift(self, gift_id: str) -> GiftState | None:
        """Get gift by ID."""
        for g in self.gifts:
            if g.gift_id == gift_id:
                return g
        return None

    def require_gift(self, gift_id: str | None) -> GiftState:
        gift = self.get_gift(gift_id) if gift_id else None
        if gift is None:
            raise GiftNotFound(f"Gift {gift_id} not found", gift_id=gift_id)
        return gift

    def gift_owned_by(self, player_id: str) -> GiftState | None:
        for g in self.gifts:
            if g.current_owner_id == player_id:
                return g
        return None

    # -------------------------------------------------------------------------
    # Copy-on-write helpers
    # -------------------------------------------------------------------------

    def with_player(self, player: PlayerState) -> GameState:
        """Return new state with the player added or replaced."""
        if self.get_player(player.player_id) is None:
            return self._copy_with(players=self.players + [player])
        new_players = [
            player if p.player_id == player.player_id else p
            for p in self.players
        ]
        return self._copy_with(players=new_players)

    def without_player(self, player_id: str) -> GameState:
        return self._copy_with(
            players=[p for p in self.players if p.player_id != player_id]
        )

    def with_gift(self, gift: GiftState) -> GameState:
        """Return new state with the gift added or replaced."""
        if self.get_gift(gift.gift_id) is None:
            return self._copy_with(gifts=self.gifts + [gift])
        new_gifts = [
            gift if g.gift_id == gift.gift_id else g
            for g in self.gifts
        ]
        return self._copy_with(gifts=new_gifts)

    def without_gift(self, gift_id: str) -> GameState:
        return self._copy_with(
            gifts=[g for g in self.gifts if g.gift_id != gift_id]
        )

    def with_action(self, record: ActionRecord) -> GameState:
        return self._copy_with(actions=self.actions + [record])

    def _copy_with(self, **kwargs) -> GameState:
        """Create a copy with some fields replaced."""
        return replace(self, **kwargs)

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def session_record(self) -> dict[str, Any]:
        """Row shape as persisted in the game_sessions table."""
        return {
            "id": self.session_id,
            "session_code": self.session_code,
            "game_status": self.phase.value,
            "active_player_id": self.active_player_id,
            "first_player_id": self.first_player_id,
            "round_index": self.round_index,
            "is_final_round": self.is_final_round,
            "turn_started_at": self.turn_started_at,
            **self.config.to_dict(),
            "version": self.version,
            "created_at": self.created_at,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "session": self.session_record(),
            "players": [p.to_record(self.session_id) for p in self.players],
            "gifts": [g.to_record(self.session_id) for g in self.gifts],
            "actions": [a.to_record() for a in self.actions],
            "random_seed": self.random_seed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GameState:
        session = data["session"]
        config = GameConfig(
            max_steals_per_gift=session["max_steals_per_gift"],
            randomize_order=session["randomize_order"],
            allow_immediate_stealback=session["allow_immediate_stealback"],
            turn_timer_enabled=session["turn_timer_enabled"],
            turn_timer_seconds=session["turn_timer_seconds"],
        )
        players = [
            PlayerState(
                player_id=p["id"],
                display_name=p["display_name"],
                order_index=p["order_index"],
                current_gift_id=p["current_gift_id"],
                has_completed_turn=p["has_completed_turn"],
                is_admin=p["is_admin"],
                avatar_seed=p["avatar_seed"],
                joined_at=p["joined_at"],
            )
            for p in data["players"]
        ]
        gifts = [
            GiftState(
                gift_id=g["id"],
                name=g["name"],
                image_url=g["image_url"],
                link=g["link"],
                description=g["description"],
                status=GiftStatus.parse(g["status"]),
                steal_count=g["steal_count"],
                current_owner_id=g["current_owner_id"],
                position=g["position"],
            )
            for g in data["gifts"]
        ]
        return cls(
            session_id=session["id"],
            session_code=session["session_code"],
            phase=GamePhase(session["game_status"]),
            active_player_id=session["active_player_id"],
            first_player_id=session["first_player_id"],
            round_index=session["round_index"],
            is_final_round=session["is_final_round"],
            turn_started_at=session["turn_started_at"],
            config=config,
            players=players,
            gifts=gifts,
            actions=[ActionRecord.from_record(a) for a in data["actions"]],
            version=session["version"],
            random_seed=data.get("random_seed"),
            created_at=session["created_at"],
        )
