"""
Results Report - Who ended up with what.

One row per player in turn order. The CSV export quotes every cell so
names with commas or quotes survive spreadsheet imports.
"""

from __future__ import annotations
from dataclasses import dataclass
import csv
import io

from .engine_core.history import ActionHistory
from .engine_core.state import ActionKind, ActionRecord, GameState

CSV_HEADER = ["Rank", "Player Name", "Gift Name", "Gift Image URL", "Order Index", "Steal Count"]
NO_GIFT = "No gift"


@dataclass(frozen=True)
class ResultRow:
    rank: int
    player_id: str
    player_name: str
    gift_id: str | None
    gift_name: str
    gift_image_url: str
    order_index: int
    steal_count: int
    steals_made: int = 0
    times_stolen_from: int = 0

    def to_csv_row(self) -> list[str]:
        return [
            str(self.rank),
            self.player_name,
            self.gift_name,
            self.gift_image_url,
            str(self.order_index),
            str(self.steal_count),
        ]


def build_results(state: GameState) -> list[ResultRow]:
    """One row per player; steal counts come from the action log."""
    history = ActionHistory.of(state)
    steals_made = history.steal_counts_by_player()
    stolen_from = history.times_stolen_from()
    rows = []
    for rank, player in enumerate(state.players_in_order, start=1):
        gift = state.gift_owned_by(player.player_id)
        rows.append(ResultRow(
            rank=rank,
            player_id=player.player_id,
            player_name=player.display_name,
            gift_id=gift.gift_id if gift else None,
            gift_name=gift.name if gift else NO_GIFT,
            gift_image_url=gift.image_url if gift else "",
            order_index=player.order_index,
            steal_count=gift.steal_count if gift else 0,
            steals_made=steals_made.get(player.player_id, 0),
            times_stolen_from=stolen_from.get(player.player_id, 0),
        ))
    return rows


def to_csv(state: GameState) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for row in build_results(state):
        writer.writerow(row.to_csv_row())
    return buffer.getvalue()


def csv_filename(state: GameState) -> str:
    return f"white-elephant-results-{state.session_code}.csv"


def describe_action(state: GameState, record: ActionRecord) -> str:
    """One-line history entry, e.g. "Ann stole Socks from Bob"."""
    player = state.get_player(record.player_id)
    gift = state.get_gift(record.gift_id)
    who = player.display_name if player else "A removed player"
    what = gift.name if gift else "a removed gift"
    if record.action_type == ActionKind.PICK:
        return f"{who} opened {what}"
    if record.previous_owner_id is None:
        return f"{who} claimed {what}"
    victim = state.get_player(record.previous_owner_id)
    return f"{who} stole {what} from {victim.display_name if victim else 'a removed player'}"


def describe_history(state: GameState) -> list[str]:
    return [describe_action(state, r) for r in ActionHistory.of(state).records]
