"""
Call Center KPI Engine - Duration Parser
Converts platform duration text (H:MM:SS[.fff]) into seconds.
Seconds are the single reference unit for every calculator downstream.
"""
import math

ZERO_SENTINEL = '0:00:00.000'
# Anything longer than ~30 years is a corrupt cell, not a duration.
MAX_SECONDS = 1e9


def parse_duration(text):
    """Parse 'H:MM:SS[.fff]' into seconds. Never raises.

    Empty/missing text, the zero sentinel, or anything that does not split into
    exactly three parts gives 0. A non-numeric part contributes 0 for that
    component only, so '1:xx:30' is 3630.0.
    """
    if text is None:
        return 0.0
    clean = str(text).strip()
    if not clean or clean == ZERO_SENTINEL:
        return 0.0
    parts = clean.split(':')
    if len(parts) != 3:
        return 0.0
    hours = _to_number(parts[0])
    minutes = _to_number(parts[1])
    seconds = _to_number(parts[2])
    total = hours * 3600 + minutes * 60 + seconds
    if not math.isfinite(total) or abs(total) > MAX_SECONDS:
        return 0.0
    return total


def _to_number(part):
    try:
        val = float(part.strip())
    except ValueError:
        return 0.0
    # nan/inf would poison every sum they touch
    if not math.isfinite(val):
        return 0.0
    return val


def to_minutes(seconds):
    """Display helper only; calculators stay in seconds."""
    return seconds / 60


def format_duration(seconds):
    """Render seconds as H:MM:SS for calculation strings."""
    if not math.isfinite(seconds):
        seconds = 0
    total = int(round(max(seconds, 0)))
    h, rem = divmod(total, 3600)
    m, s = divmod(rem, 60)
    return f"{h}:{m:02d}:{s:02d}"
