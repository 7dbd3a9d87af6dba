import time
from datetime import datetime

import pytz


class TimeHelper:
    """A static helper class for standardized time and date operations."""
    UTC = pytz.utc

    @staticmethod
    def get_current_timestamp_ms() -> int:
        """Returns the current Unix timestamp in milliseconds."""
        return int(time.time() * 1000)

    @staticmethod
    def round_down(timestamp_ms: int, seconds: int) -> int:
        """Rounds a millisecond timestamp down to a multiple of `seconds`."""
        step = 1000 * seconds
        return (timestamp_ms // step) * step

    @staticmethod
    def format_timestamp_ms(timestamp_ms: int) -> str:
        return datetime.fromtimestamp(timestamp_ms / 1000, TimeHelper.UTC).strftime('%Y-%m-%d %H:%M:%S UTC')
