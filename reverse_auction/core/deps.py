# reverse_auction/core/deps.py
from reverse_auction.core.clock import Clock, utcnow


def get_clock() -> Clock:
    """
    Time source for request handlers. Overridden in tests to pin "now".
    """
    return utcnow
