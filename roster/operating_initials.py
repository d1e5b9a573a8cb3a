"""
Operating initials assignment.

Every controller on the roster gets a unique two-letter code. Candidates are
tried in tiers, most recognisable first:

1. first initial + last initial
2. last initial + first initial
3. random pairs drawn from the letters of the controller's own name
4. random pairs drawn from A-Z

Each random tier makes a bounded number of probes, so generation always
terminates and returns None once every tier is exhausted.
"""

import random
import string
from typing import Iterable, Mapping, Optional

from shared.log import create_logger

_, log_debug, _, log_warn, _ = create_logger("Roster")

MAX_TRIES = 10
ALPHABET = string.ascii_uppercase


def _letters(name: Optional[str]) -> str:
    return ''.join(ch for ch in (name or '').upper() if ch in ALPHABET)


def generate_operating_initials(
    fname: str,
    lname: str,
    used: Iterable[str],
    rng: Optional[random.Random] = None,
    max_tries: int = MAX_TRIES,
) -> Optional[str]:
    """
    Generate an unused two-letter operating initials code.

    Args:
        fname: Controller's first name
        lname: Controller's last name
        used: Codes already assigned on the roster (case-insensitive)
        rng: Random source for the random tiers; seed it for reproducible output
        max_tries: Probes per random tier

    Returns:
        Uppercase two-letter code, or None if no unused code was found.

    Example:
        >>> generate_operating_initials("Jane", "Doe", {"JD"})
        'DJ'
    """
    taken = {code.upper() for code in used if code}
    rng = rng or random.Random()

    first = _letters(fname)
    last = _letters(lname)

    if first and last:
        for candidate in (first[0] + last[0], last[0] + first[0]):
            if candidate not in taken:
                return candidate

    pools = [pool for pool in (last + first, ALPHABET) if pool]
    for pool in pools:
        for _ in range(max_tries):
            candidate = rng.choice(pool) + rng.choice(pool)
            if candidate not in taken:
                return candidate

    log_warn(f"Could not find unused operating initials for {fname} {lname} after {len(pools) * max_tries} probes")
    return None


def resolve_operating_initials(
    cid: int,
    current: Optional[str],
    fname: str,
    lname: str,
    roster: Mapping[int, Optional[str]],
    rng: Optional[random.Random] = None,
) -> Optional[str]:
    """
    Keep a controller's existing initials if they are still theirs, otherwise assign new ones.

    Current initials are kept when nobody on the roster holds them, or when
    the roster entry for *cid* holds them, even if others share the code.

    Args:
        cid: Controller's CID
        current: Controller's current initials, if any
        fname: First name
        lname: Last name
        roster: CID -> initials for every active roster member
        rng: Random source passed to generate_operating_initials

    Returns:
        Initials to use, or None if the roster is exhausted.
    """
    if current:
        current = current.upper()
        holders = {other for other, code in roster.items() if code and code.upper() == current}
        if not holders or cid in holders:
            return current
        log_debug(f"Operating initials {current} of {cid} are held by {sorted(holders)}")

    used = [code for other, code in roster.items() if other != cid and code]
    return generate_operating_initials(fname, lname, used, rng=rng)


__all__ = ['MAX_TRIES', 'generate_operating_initials', 'resolve_operating_initials']
