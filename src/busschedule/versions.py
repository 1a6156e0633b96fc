"""
Schedule version selection.

Several schedule versions may be published at once; future-dated ones
are ignored until their valid_from date arrives.
"""

import logging
from typing import Iterable, Optional

from .models import Schedule
from .service_calendar import DateLike, as_date

logger = logging.getLogger(__name__)


def get_current_schedule(
    schedules: Iterable[Schedule],
    reference_date: DateLike
) -> Optional[Schedule]:
    """
    Pick the schedule version valid on ``reference_date``.

    The candidate with the greatest valid_from not after the reference
    date wins; equal valid_from dates are broken by the greatest id.

    Args:
        schedules: All known schedule versions
        reference_date: Date the selection is made for

    Returns:
        The current Schedule, or None when no version is valid yet
    """
    reference = as_date(reference_date).isoformat()

    # ISO YYYY-MM-DD strings compare in date order
    candidates = [s for s in schedules if s.valid_from <= reference]
    if not candidates:
        logger.debug(f"No schedule version valid on {reference}")
        return None

    current = max(candidates, key=lambda s: (s.valid_from, s.id))
    logger.debug(f"Schedule {current.id} (valid from {current.valid_from}) selected for {reference}")
    return current
