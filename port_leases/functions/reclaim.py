import logging

from ..models.models import RootState


def reclaim(state: RootState, now: float) -> RootState:
    """
    Drop every lease whose expires_at is at or before now.

    Args:
        state: Current allocation state
        now: Current unix time in seconds

    Returns:
        A new RootState holding only live leases; next_hint is unchanged
    """
    live = {base: rec for base, rec in state.allocations.items() if not rec.is_expired(now)}

    reclaimed = len(state.allocations) - len(live)
    if reclaimed:
        logging.debug(f"Reclaimed {reclaimed} expired lease(s)")

    return RootState(next_hint=state.next_hint, allocations=live)
