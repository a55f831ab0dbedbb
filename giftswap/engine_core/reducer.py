"""
Reducer - Applies actions to game state.

The reducer is the single point of state mutation.
All state changes must go through apply_action().

Design principles:
- Pure function: (state, action) -> ActionResult(new_state, events)
- Validates every precondition before building the new state
- Returns ActionResult with success/failure and the typed error
- Bumps state.version by one per successful action so the store can
  commit it atomically against the version it was computed from
"""

from __future__ import annotations
from dataclasses import dataclass, field, replace
import logging
import random

from .state import (
    ActionKind, ActionRecord, GameState, GamePhase, GiftState, PlayerState,
)
from .action import Action, ActionType, ActionResult
from .action_generator import ActionGenerator
from .errors import (
    CannotRemoveAdmin, DuplicatePlayerName, GiftSwapError, InvalidAction,
    JoinClosed,
)
from .events import (
    ConfigChanged, DomainEvent, FinalRoundStarted, GameEnded, GameStarted,
    GiftCatalogChanged, GiftPicked, GiftStolen, PhaseChanged, PlayerJoined,
    PlayerRemoved, TurnChanged,
)
from .history import ActionHistory
from .phase import SessionStateMachine
from .sequencer import TurnSequencer
from . import rules

logger = logging.getLogger(__name__)

EDITABLE_GIFT_FIELDS = frozenset({"name", "image_url", "link", "description", "position"})

Outcome = tuple[GameState, list[DomainEvent]]


@dataclass
class Reducer:
    """
    Reducer applies actions to game state.

    Stateless - all state is in GameState.
    """
    machine: SessionStateMachine = field(default_factory=SessionStateMachine)
    sequencer: TurnSequencer = field(default_factory=TurnSequencer)
    generator: ActionGenerator = field(default_factory=ActionGenerator)

    def apply(self, state: GameState, action: Action) -> ActionResult:
        """
        Apply an action to the game state.

        Returns ActionResult with new state or the typed error.
        """
        handler = self._get_handler(action.action_type)
        if not handler:
            return ActionResult.failure(
                InvalidAction(f"No handler for action type: {action.action_type}")
            )

        try:
            result = handler(state, action)
        except GiftSwapError as e:
            logger.debug(
                "Rejected %s in session %s: %s",
                action.action_type.value, state.session_id, e.error_code,
            )
            return ActionResult.failure(e)

        return self._finalize(state, action, result)

    def _finalize(
        self, before: GameState, action: Action, result: ActionResult
    ) -> ActionResult:
        """Add the turn/phase events every handler shares and bump the version."""
        new_state: GameState = result.new_state
        events = list(result.events)

        if new_state.phase != before.phase:
            events.append(PhaseChanged(
                previous_phase=before.phase.value,
                phase=new_state.phase.value,
            ))

        final_round_began = any(isinstance(e, FinalRoundStarted) for e in events)
        if new_state.active_player_id != before.active_player_id or final_round_began:
            new_state = new_state._copy_with(
                turn_started_at=action.timestamp if new_state.active_player_id else None,
            )
            if new_state.active_player_id is not None:
                events.append(TurnChanged(
                    player_id=new_state.active_player_id,
                    previous_player_id=before.active_player_id,
                ))

        new_state = new_state._copy_with(version=before.version + 1)
        return ActionResult.success_with_state(
            new_state,
            events=events,
            changes=result.state_changes,
        )

    def _get_handler(self, action_type: ActionType):
        """Get the handler function for an action type."""
        handlers = {
            ActionType.PICK_GIFT: self._handle_pick,
            ActionType.STEAL_GIFT: self._handle_steal,
            ActionType.KEEP_GIFT: self._handle_keep,
            ActionType.JOIN_SESSION: self._handle_join,
            ActionType.OPEN_LOBBY: self._handle_open_lobby,
            ActionType.START_GAME: self._handle_start,
            ActionType.PAUSE_GAME: self._handle_pause,
            ActionType.RESUME_GAME: self._handle_resume,
            ActionType.END_GAME: self._handle_end,
            ActionType.REMOVE_PLAYER: self._handle_remove_player,
            ActionType.ADD_GIFTS: self._handle_add_gifts,
            ActionType.UPDATE_GIFT: self._handle_update_gift,
            ActionType.REMOVE_GIFT: self._handle_remove_gift,
            ActionType.UPDATE_CONFIG: self._handle_update_config,
        }
        return handlers.get(action_type)

    # =========================================================================
    # Player actions
    # =========================================================================

    def _handle_pick(self, state: GameState, action: Action) -> ActionResult:
        """Open a hidden gift and take it."""
        actor = rules.require_turn(state, action.payload.player_id)
        gift = state.require_gift(action.payload.gift_id)
        rules.check_pick(state, actor, gift)

        ledger = rules.ledger_for(state)
        record = self._record(state, action, ActionKind.PICK, actor, gift, None)
        new_state = state.with_gift(ledger.reveal(gift, actor.player_id))

        # Final round only: the gift the actor held goes back to the pool
        released_id = actor.current_gift_id
        if released_id is not None:
            held = new_state.require_gift(released_id)
            new_state = new_state.with_gift(ledger.release(held))

        new_state = new_state.with_player(
            replace(actor, current_gift_id=gift.gift_id, has_completed_turn=True)
        ).with_action(record)

        events: list[DomainEvent] = [GiftPicked(
            player_id=actor.player_id,
            gift_id=gift.gift_id,
            gift_name=gift.name,
            released_gift_id=released_id,
        )]
        changes = [f"{actor.display_name} opened {gift.name}"]

        if state.is_final_round:
            # A fresh pick means nobody wants to steal any more
            new_state = self.machine.end(new_state)
            events.append(GameEnded(reason="final_round_pick", player_id=actor.player_id))
            changes.append("Game over")
        else:
            new_state, more = self._advance(new_state, actor.order_index)
            events.extend(more)

        return ActionResult.success_with_state(new_state, events=events, changes=changes)

    def _handle_steal(self, state: GameState, action: Action) -> ActionResult:
        """Take a revealed gift; the turn passes to the player robbed."""
        actor = rules.require_turn(state, action.payload.player_id)
        gift = state.require_gift(action.payload.gift_id)
        rules.check_steal(state, actor, gift)

        ledger = rules.ledger_for(state)
        victim_id = gift.current_owner_id
        record = self._record(state, action, ActionKind.STEAL, actor, gift, victim_id)
        new_state = state.with_gift(ledger.transfer(gift, actor.player_id)).with_action(record)

        # Final round only: the actor's current gift goes to the victim so
        # that everyone still holds exactly one gift during the chain
        swapped_id = actor.current_gift_id
        if swapped_id is not None:
            held = new_state.require_gift(swapped_id)
            if victim_id is not None:
                new_state = new_state.with_gift(ledger.hand_over(held, victim_id))
            else:
                new_state = new_state.with_gift(ledger.release(held))

        if victim_id is not None:
            victim = new_state.require_player(victim_id)
            new_state = new_state.with_player(replace(
                victim,
                current_gift_id=swapped_id,
                has_completed_turn=False,
            ))

        new_state = new_state.with_player(
            replace(actor, current_gift_id=gift.gift_id, has_completed_turn=True)
        )

        stolen = new_state.require_gift(gift.gift_id)
        events: list[DomainEvent] = [GiftStolen(
            player_id=actor.player_id,
            gift_id=gift.gift_id,
            gift_name=gift.name,
            victim_id=victim_id,
            steal_count=stolen.steal_count,
            steals_remaining=ledger.steals_remaining(stolen),
            is_locked=stolen.is_locked,
            swapped_gift_id=swapped_id if victim_id else None,
        )]
        changes = [f"{actor.display_name} stole {gift.name}"]
        if stolen.is_locked:
            changes.append(f"{gift.name} is now locked")

        if victim_id is not None:
            new_state, more = self._hand_turn_to(new_state, victim_id)
            events.extend(more)
        elif state.is_final_round:
            new_state = self.machine.end(new_state)
            events.append(GameEnded(reason="final_round_claim", player_id=actor.player_id))
        else:
            new_state, more = self._advance(new_state, actor.order_index)
            events.extend(more)

        return ActionResult.success_with_state(new_state, events=events, changes=changes)

    def _handle_keep(self, state: GameState, action: Action) -> ActionResult:
        """The final-round player declines to steal: the game is over."""
        rules.require_phase(state, GamePhase.ACTIVE)
        actor = state.require_player(action.payload.player_id)
        rules.check_keep(state, actor)
        rules.require_turn(state, actor.player_id)

        new_state = self.machine.end(state)
        return ActionResult.success_with_state(
            new_state,
            events=[GameEnded(reason="kept", player_id=actor.player_id)],
            changes=[f"{actor.display_name} kept their gift", "Game over"],
        )

    # =========================================================================
    # Turn passing
    # =========================================================================

    def _advance(self, state: GameState, after_order_index: int) -> Outcome:
        """Give the turn to the next player still owed an opening turn."""
        next_id = self.sequencer.next_player_id(state, after_order_index)
        if next_id is None:
            return self._begin_final_round(state)
        return self._hand_turn_to(state, next_id)

    def _hand_turn_to(self, state: GameState, player_id: str) -> Outcome:
        """
        Make player_id active.

        This overrides the rule that a steal always hands the turn to the
        victim: in the opening round a victim (or any player due) who can
        neither pick nor steal is passed over for the next waiting player.
        When nobody waiting can move,
        the final round starts. In the final round the victim always gets
        the turn, since keep is always available there.
        """
        if state.is_final_round:
            return state._copy_with(active_player_id=player_id), []

        candidate = state.require_player(player_id)
        queue = [candidate] + [
            p for p in self.sequencer.waiting_after(state, candidate.order_index)
            if p.player_id != candidate.player_id
        ]
        for player in queue:
            trial = state._copy_with(active_player_id=player.player_id)
            # Moves are judged as if the game were running, even while paused
            running = trial._copy_with(phase=GamePhase.ACTIVE)
            if self.generator.moves_for(running, player.player_id).has_any:
                return trial, []
            logger.debug("Player %s has no legal move, passing", player.player_id)
        return self._begin_final_round(state)

    def _begin_final_round(self, state: GameState) -> Outcome:
        new_state = self.machine.begin_final_round(state)
        return new_state, [FinalRoundStarted(player_id=new_state.first_player_id)]

    # =========================================================================
    # Lobby and admin actions
    # =========================================================================

    def _handle_join(self, state: GameState, action: Action) -> ActionResult:
        """Add a player to a session that is accepting players."""
        if state.phase != GamePhase.LOBBY:
            raise JoinClosed(
                "Game is not accepting players",
                phase=state.phase.value,
            )
        player_id = action.payload.player_id
        if not player_id:
            raise InvalidAction("Join requires a player_id")
        if state.get_player(player_id) is not None:
            raise InvalidAction(f"Player {player_id} has already joined")

        display_name = (action.payload.params.get("display_name") or "").strip()
        if not display_name:
            raise InvalidAction("Display name is required")
        for p in state.players:
            if p.display_name.casefold() == display_name.casefold():
                raise DuplicatePlayerName(
                    f"Someone called {display_name} has already joined",
                    display_name=display_name,
                )

        joined_at = action.timestamp or 0.0
        order_index = max((p.order_index for p in state.players), default=0) + 1
        player = PlayerState(
            player_id=player_id,
            display_name=display_name,
            order_index=order_index,
            avatar_seed=(
                action.payload.params.get("avatar_seed")
                or f"{display_name}-{int(joined_at * 1000)}"
            ),
            joined_at=joined_at,
        )
        return ActionResult.success_with_state(
            state.with_player(player),
            events=[PlayerJoined(
                player_id=player_id,
                display_name=display_name,
                order_index=order_index,
            )],
            changes=[f"{display_name} joined"],
        )

    def _handle_open_lobby(self, state: GameState, action: Action) -> ActionResult:
        rules.require_admin(state, action.payload.player_id)
        return ActionResult.success_with_state(
            self.machine.open_lobby(state),
            changes=["Lobby opened"],
        )

    def _handle_start(self, state: GameState, action: Action) -> ActionResult:
        """Fix the turn order and give the first player the turn."""
        rules.require_admin(state, action.payload.player_id)
        seed = action.payload.params.get("seed")
        new_state = self.machine.start(state, random.Random(seed))
        new_state = new_state._copy_with(random_seed=seed)

        events: list[DomainEvent] = [GameStarted(
            first_player_id=new_state.first_player_id,
            turn_order=tuple(p.player_id for p in new_state.players_in_order),
        )]
        # With no gifts at all the first player cannot move
        new_state, more = self._hand_turn_to(new_state, new_state.first_player_id)
        events.extend(more)

        first = state.require_player(new_state.first_player_id)
        return ActionResult.success_with_state(
            new_state,
            events=events,
            changes=[f"Game started, {first.display_name} goes first"],
        )

    def _handle_pause(self, state: GameState, action: Action) -> ActionResult:
        rules.require_admin(state, action.payload.player_id)
        return ActionResult.success_with_state(
            self.machine.pause(state),
            changes=["Game paused"],
        )

    def _handle_resume(self, state: GameState, action: Action) -> ActionResult:
        rules.require_admin(state, action.payload.player_id)
        return ActionResult.success_with_state(
            self.machine.resume(state),
            changes=["Game resumed"],
        )

    def _handle_end(self, state: GameState, action: Action) -> ActionResult:
        admin = rules.require_admin(state, action.payload.player_id)
        return ActionResult.success_with_state(
            self.machine.end(state),
            events=[GameEnded(reason="ended_by_host", player_id=admin.player_id)],
            changes=["Game ended by host"],
        )

    def _handle_remove_player(self, state: GameState, action: Action) -> ActionResult:
        """
        Remove a player, releasing their gift.

        If they held the turn, it moves on so that an active game always
        has exactly one active player.
        """
        rules.require_admin(state, action.payload.player_id)
        rules.require_phase(state, GamePhase.SETUP, GamePhase.LOBBY,
                            GamePhase.ACTIVE, GamePhase.PAUSED)
        target = state.require_player(action.payload.target_player_id)
        if target.is_admin:
            raise CannotRemoveAdmin("The host cannot be removed", player_id=target.player_id)

        ledger = rules.ledger_for(state)
        new_state = state
        released_id = None
        owned = state.gift_owned_by(target.player_id)
        if owned is not None:
            new_state = new_state.with_gift(ledger.release(owned))
            released_id = owned.gift_id
        new_state = new_state.without_player(target.player_id)

        if new_state.first_player_id == target.player_id:
            new_state = new_state._copy_with(
                first_player_id=self.sequencer.first_in_order(new_state)
            )

        events: list[DomainEvent] = [PlayerRemoved(
            player_id=target.player_id,
            released_gift_id=released_id,
        )]
        in_game = state.phase in (GamePhase.ACTIVE, GamePhase.PAUSED)
        if in_game and state.active_player_id == target.player_id:
            if new_state.is_final_round:
                new_state = new_state._copy_with(active_player_id=new_state.first_player_id)
            else:
                new_state, more = self._advance(new_state, target.order_index)
                events.extend(more)

        return ActionResult.success_with_state(
            new_state,
            events=events,
            changes=[f"{target.display_name} was removed"],
        )

    def _handle_add_gifts(self, state: GameState, action: Action) -> ActionResult:
        rules.require_admin(state, action.payload.player_id)
        rules.require_phase(state, GamePhase.SETUP, GamePhase.LOBBY)

        entries = action.payload.params.get("gifts") or []
        if not entries:
            raise InvalidAction("No gifts to add")

        position = max(
            (g.position for g in state.gifts if g.position is not None), default=0
        )
        new_state = state
        added: list[str] = []
        for entry in entries:
            gift_id = entry.get("gift_id")
            name = (entry.get("name") or "").strip()
            if not gift_id or not name:
                raise InvalidAction("Every gift needs a gift_id and a name")
            if new_state.get_gift(gift_id) is not None:
                raise InvalidAction(f"Gift {gift_id} already exists")
            position += 1
            new_state = new_state.with_gift(GiftState(
                gift_id=gift_id,
                name=name,
                image_url=entry.get("image_url") or "",
                link=entry.get("link") or None,
                description=entry.get("description") or None,
                position=position,
            ))
            added.append(gift_id)

        return ActionResult.success_with_state(
            new_state,
            events=[GiftCatalogChanged(change="added", gift_ids=tuple(added))],
            changes=[f"Added {len(added)} gift(s)"],
        )

    def _handle_update_gift(self, state: GameState, action: Action) -> ActionResult:
        rules.require_admin(state, action.payload.player_id)
        rules.require_phase(state, GamePhase.SETUP, GamePhase.LOBBY)
        gift = state.require_gift(action.payload.gift_id)

        updates = dict(action.payload.params)
        unknown = set(updates) - EDITABLE_GIFT_FIELDS
        if unknown:
            raise InvalidAction(f"Cannot edit gift fields: {sorted(unknown)}")
        if "name" in updates and not (updates["name"] or "").strip():
            raise InvalidAction("Gift name cannot be empty")
        for key in ("link", "description"):
            if key in updates and not updates[key]:
                updates[key] = None

        return ActionResult.success_with_state(
            state.with_gift(replace(gift, **updates)),
            events=[GiftCatalogChanged(change="updated", gift_ids=(gift.gift_id,))],
            changes=[f"Updated {gift.name}"],
        )

    def _handle_remove_gift(self, state: GameState, action: Action) -> ActionResult:
        rules.require_admin(state, action.payload.player_id)
        rules.require_phase(state, GamePhase.SETUP, GamePhase.LOBBY)
        gift = state.require_gift(action.payload.gift_id)
        return ActionResult.success_with_state(
            state.without_gift(gift.gift_id),
            events=[GiftCatalogChanged(change="removed", gift_ids=(gift.gift_id,))],
            changes=[f"Removed {gift.name}"],
        )

    def _handle_update_config(self, state: GameState, action: Action) -> ActionResult:
        rules.require_admin(state, action.payload.player_id)
        rules.require_phase(state, GamePhase.SETUP, GamePhase.LOBBY)
        updates = dict(action.payload.params)
        if not updates:
            raise InvalidAction("No config changes given")
        return ActionResult.success_with_state(
            state._copy_with(config=state.config.merged(updates)),
            events=[ConfigChanged(fields=tuple(sorted(updates)))],
            changes=[f"Updated settings: {', '.join(sorted(updates))}"],
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _record(
        self,
        state: GameState,
        action: Action,
        kind: ActionKind,
        actor: PlayerState,
        gift: GiftState,
        previous_owner_id: str | None,
    ) -> ActionRecord:
        sequence = ActionHistory.of(state).next_sequence
        return ActionRecord(
            action_id=action.action_id or f"{state.session_id}:{sequence}",
            session_id=state.session_id,
            player_id=actor.player_id,
            action_type=kind,
            gift_id=gift.gift_id,
            previous_owner_id=previous_owner_id,
            sequence=sequence,
            created_at=action.timestamp or 0.0,
        )


def apply_action(state: GameState, action: Action) -> ActionResult:
    """
    Convenience function to apply an action.

    Creates a Reducer and applies the action.
    """
    reducer = Reducer()
    return reducer.apply(state, action)
