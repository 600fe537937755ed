"""Free ONU slot computation."""

from __future__ import annotations

from typing import Iterable

from oltmon.acquisition.models import ONU_SLOTS_PER_PON, FreeSlot


def free_slots(
    board: int,
    pon: int,
    discovered_ids: Iterable[int],
    universe_size: int = ONU_SLOTS_PER_PON,
) -> list[FreeSlot]:
    """Return every id in 1..universe_size not present in ``discovered_ids``, ascending."""
    taken = set(discovered_ids)
    return [
        FreeSlot(board=board, pon=pon, onu_id=onu_id)
        for onu_id in range(1, universe_size + 1)
        if onu_id not in taken
    ]
