"""Priority comparison rule used when a booking overlaps an existing one."""

from __future__ import annotations


class PriorityEngine:
    """Decides whether a requester may bump an existing holder.

    Priority is a binary flag on both rooms and workers, so two priority
    workers (or two ordinary ones) cannot be ranked against each other; in
    that case the existing reservation keeps the slot.
    """

    def may_preempt(
        self,
        requester_is_priority: bool,
        holder_is_priority: bool,
        room_is_priority: bool,
    ) -> bool:
        if not room_is_priority:
            return False
        return requester_is_priority and not holder_is_priority
