import logging
import random

import requests

logger = logging.getLogger(__name__)

QUOTABLE_URL = "https://api.quotable.io/random?tags=inspirational|motivational"

FALLBACK_QUOTES = [
    ("The darkest night is often the bridge to the brightest tomorrow.", "Anonymous"),
    ("You don't have to be positive all the time.", "Lori Deschene"),
    ("Healing is not linear.", "Anonymous"),
    ("Breathe. You're going to be okay.", "Anonymous"),
]


def get_quotable_quote():
    try:
        r = requests.get(QUOTABLE_URL, timeout=4)
        if r.status_code == 200:
            d = r.json()
            if d.get("content"):
                return d["content"], d.get("author", "")
    except Exception as e:
        logger.info("Quote API unavailable: %s", e)
    q = random.choice(FALLBACK_QUOTES)
    return q[0], q[1]
