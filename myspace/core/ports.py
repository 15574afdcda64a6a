"""App port allocation."""

import random
from typing import Optional

# IANA dynamic/private range, inclusive.
DYNAMIC_PORT_FIRST = 49152
DYNAMIC_PORT_LAST = 65535


def allocate_app_port(rng: Optional[random.Random] = None) -> int:
    """Pick a port for the in-container web UI.

    No check is made that the port is free in the container; with one
    container per project a collision is unlikely and is left to surface as
    a bind failure of the web server.
    """
    return (rng or random).randint(DYNAMIC_PORT_FIRST, DYNAMIC_PORT_LAST)
