"""
Gift Ownership Ledger - Visibility, owner and steal count of each gift.

The ledger enforces the steal ceiling: a transfer that brings a gift's
steal_count to max_steals_per_gift locks it, and a locked gift never
changes hands again.

All operations take a GiftState and return a new one; they never touch
players or the session. The reducer stitches the results together.
"""

from __future__ import annotations
from dataclasses import dataclass, replace

from .state import GiftState, GiftStatus
from .errors import GiftLocked, GiftNotHidden, GiftNotStealable


@dataclass(frozen=True)
class GiftLedger:
    """Ownership rules for gifts under one session's steal ceiling."""
    max_steals_per_gift: int

    def steals_remaining(self, gift: GiftState) -> int:
        return max(0, self.max_steals_per_gift - gift.steal_count)

    def check_revealable(self, gift: GiftState) -> None:
        if gift.is_locked:
            raise GiftLocked(f"Gift {gift.name} is locked", gift_id=gift.gift_id)
        if not gift.is_hidden:
            raise GiftNotHidden(
                f"Gift {gift.name} has already been opened",
                gift_id=gift.gift_id,
            )

    def check_transferable(self, gift: GiftState) -> None:
        if gift.is_locked or gift.steal_count >= self.max_steals_per_gift:
            raise GiftLocked(
                f"Gift {gift.name} is locked and cannot be stolen",
                gift_id=gift.gift_id,
                steal_count=gift.steal_count,
            )
        if gift.is_hidden:
            raise GiftNotStealable(
                f"Gift {gift.name} has not been opened yet",
                gift_id=gift.gift_id,
            )

    def reveal(self, gift: GiftState, owner_id: str) -> GiftState:
        """Open a hidden gift for its first owner. steal_count is unchanged."""
        self.check_revealable(gift)
        return replace(gift, status=GiftStatus.REVEALED, current_owner_id=owner_id)

    def transfer(self, gift: GiftState, new_owner_id: str) -> GiftState:
        """Move a revealed gift to a new owner, counting one steal."""
        self.check_transferable(gift)
        steal_count = gift.steal_count + 1
        status = (
            GiftStatus.LOCKED
            if steal_count >= self.max_steals_per_gift
            else GiftStatus.REVEALED
        )
        return replace(
            gift,
            current_owner_id=new_owner_id,
            steal_count=steal_count,
            status=status,
        )

    def hand_over(self, gift: GiftState, new_owner_id: str) -> GiftState:
        """
        Give a stealer's previous gift to the player they stole from.

        Not a steal: steal_count and status are unchanged.
        """
        if gift.is_locked:
            raise GiftLocked(
                f"Gift {gift.name} is locked to its owner",
                gift_id=gift.gift_id,
            )
        return replace(gift, current_owner_id=new_owner_id)

    def release(self, gift: GiftState) -> GiftState:
        """
        Drop a gift's owner (player removed from the game).

        Revealed gifts stay revealed and return to the stealable pool.
        A locked gift stays locked; it simply has no owner any more.
        """
        return replace(gift, current_owner_id=None)
