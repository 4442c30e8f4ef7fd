"""Dosage safety scheduling constants.

These are DEFAULTS. A medication's own ``reminder_times`` override the
default slot times, and the overdue grace period is configurable via
settings.
"""

from datetime import time, timedelta
from typing import Final

# Default slot times per daily dose count. Spread across waking hours
# (08:00-20:00) so consecutive doses are as far apart as possible.
DEFAULT_SLOT_TIMES: Final[dict[int, tuple[time, ...]]] = {
    1: (time(8, 0),),
    2: (time(8, 0), time(20, 0)),
    3: (time(8, 0), time(14, 0), time(20, 0)),
    4: (time(8, 0), time(12, 0), time(16, 0), time(20, 0)),
}

# Bounds used to spread custom_count slots evenly when no reminder
# times are configured.
FIRST_DEFAULT_SLOT: Final[time] = time(8, 0)
LAST_DEFAULT_SLOT: Final[time] = time(20, 0)

# Upper bound for custom_count frequencies.
MAX_DAILY_DOSES: Final[int] = 24

# A scheduled slot stays pending this long after its time before it is
# reported overdue.
DEFAULT_OVERDUE_GRACE: Final[timedelta] = timedelta(minutes=30)

# Minimum history window loaded for evaluation. One day covers today's
# schedule even when the medication has no rolling constraints.
MIN_SNAPSHOT_LOOKBACK: Final[timedelta] = timedelta(days=1)

# Rolling clear times only move forward and a time window re-triggers
# at most once per day boundary, so a handful of passes always settles.
MAX_AVAILABILITY_ITERATIONS: Final[int] = 10
