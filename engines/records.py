"""
Call Center KPI Engine - Table Records
Typed, immutable views over the platform export rows.

Field names below are the export contract and must match verbatim.
Unknown or extra columns are ignored; missing columns read as empty text.
"""
import math
from dataclasses import dataclass
from typing import Optional

from engines.duration import parse_duration

# Cells beyond this are corrupt exports; rejecting them keeps sums finite.
MAX_MAGNITUDE = 10 ** 12

# ── Table keys ──
AGENT_STATUS = 'agentStatus'
AGENT_PERFORMANCE = 'agentPerformance'
INTERACTIONS = 'interactions'
ADHERENCE = 'adherence'
TIME_SUMMARY = 'timeSummary'

REQUIRED_TABLES = (AGENT_STATUS, AGENT_PERFORMANCE, INTERACTIONS)
OPTIONAL_TABLES = (ADHERENCE, TIME_SUMMARY)

# ── Export field names ──
F_AGENT_NAME = 'Agent Name'
F_USER_NAME = 'User Name'

F_LOGGED_IN = 'Logged In'
F_ON_QUEUE = 'On Queue'
F_BREAK = 'Break'
F_MEAL = 'Meal'
F_AWAY = 'Away'
F_NOT_RESPONDING = 'Not Responding'
F_OFF_QUEUE = 'Off Queue'

F_ANSWERED = 'Answered'
F_TRANSFERRED = 'Transferred'
F_HELD = 'Held'
F_AVG_HANDLE = 'Avg Handle'

F_DIRECTION = 'Initial Direction'
F_QUEUE = 'Queue'
F_ABANDONED = 'Abandoned'
F_TOTAL_QUEUE = 'Total Queue'
F_TOTAL_HANDLE = 'Total Handle'
F_TOTAL_ACW = 'Total ACW'
F_USERS_INTERACTED = 'Users - Interacted'

F_ADHERENCE = 'Adherence'
F_CONFORMANCE = 'Conformance'
F_EXCEPTIONS = 'Exceptions'

F_WEEK = 'Week'
F_GROUP = 'Group'
F_HOURS = 'Hours'


def text(row, field):
    val = row.get(field)
    if val is None:
        return ''
    return str(val).strip()


def agent_name(row):
    return text(row, F_AGENT_NAME) or text(row, F_USER_NAME)


def parse_int(raw):
    """Strict-ish integer parse: '12', ' 12 ', '12.0' -> 12; anything else -> None."""
    if raw is None:
        return None
    clean = str(raw).strip().replace(',', '')
    if not clean:
        return None
    try:
        val = int(clean)
    except ValueError:
        pass
    else:
        return val if abs(val) <= MAX_MAGNITUDE else None
    try:
        val = float(clean)
    except ValueError:
        return None
    if not math.isfinite(val) or not val.is_integer() or abs(val) > MAX_MAGNITUDE:
        return None
    return int(val)


def parse_count(raw):
    """Lenient count: malformed or negative values contribute 0."""
    val = parse_int(raw)
    return val if val is not None and val > 0 else 0


def parse_percent(raw):
    """'92.5%' or '92.5' -> 92.5; unparseable -> None."""
    if raw is None:
        return None
    clean = str(raw).strip().rstrip('%').strip()
    if not clean:
        return None
    try:
        val = float(clean)
    except ValueError:
        return None
    if not math.isfinite(val) or abs(val) > MAX_MAGNITUDE:
        return None
    return val


def parse_float(raw):
    if raw is None:
        return 0.0
    try:
        val = float(str(raw).strip().replace(',', ''))
    except ValueError:
        return 0.0
    if not math.isfinite(val) or abs(val) > MAX_MAGNITUDE:
        return 0.0
    return val


@dataclass(frozen=True)
class AgentStatusRow:
    agent_name: str
    logged_in_text: str
    logged_in: float
    on_queue: float
    break_: float
    meal: float
    away: float
    not_responding: float
    off_queue: float

    @classmethod
    def from_row(cls, row):
        return cls(
            agent_name=agent_name(row),
            logged_in_text=text(row, F_LOGGED_IN),
            logged_in=parse_duration(row.get(F_LOGGED_IN)),
            on_queue=parse_duration(row.get(F_ON_QUEUE)),
            break_=parse_duration(row.get(F_BREAK)),
            meal=parse_duration(row.get(F_MEAL)),
            away=parse_duration(row.get(F_AWAY)),
            not_responding=parse_duration(row.get(F_NOT_RESPONDING)),
            off_queue=parse_duration(row.get(F_OFF_QUEUE)),
        )

    @property
    def shrinkage_time(self):
        return self.break_ + self.meal + self.away + self.not_responding + self.off_queue


@dataclass(frozen=True)
class AgentPerformanceRow:
    agent_name: str
    answered: Optional[int]
    transferred: int
    held: int
    avg_handle: float

    @classmethod
    def from_row(cls, row):
        return cls(
            agent_name=agent_name(row),
            answered=parse_int(row.get(F_ANSWERED)),
            transferred=parse_count(row.get(F_TRANSFERRED)),
            held=parse_count(row.get(F_HELD)),
            avg_handle=parse_duration(row.get(F_AVG_HANDLE)),
        )


@dataclass(frozen=True)
class InteractionRow:
    direction: str
    queue: str
    abandoned_flag: str
    queue_wait: float
    handle: float
    acw: float
    agent: str = ''

    @classmethod
    def from_row(cls, row):
        return cls(
            direction=text(row, F_DIRECTION),
            queue=text(row, F_QUEUE),
            abandoned_flag=text(row, F_ABANDONED).upper(),
            queue_wait=parse_duration(row.get(F_TOTAL_QUEUE)),
            handle=parse_duration(row.get(F_TOTAL_HANDLE)),
            acw=parse_duration(row.get(F_TOTAL_ACW)),
            agent=text(row, F_USERS_INTERACTED),
        )

    @property
    def inbound(self):
        return self.direction.lower() == 'inbound'

    # Blank or unknown flags are neither answered nor abandoned.
    @property
    def abandoned(self):
        return self.abandoned_flag == 'YES'

    @property
    def answered(self):
        return self.abandoned_flag == 'NO'

    @property
    def work_time(self):
        return self.handle + self.acw


@dataclass(frozen=True)
class AdherenceRow:
    agent_name: str
    adherence: Optional[float]
    conformance: Optional[float]
    exceptions: int

    @classmethod
    def from_row(cls, row):
        return cls(
            agent_name=agent_name(row),
            adherence=parse_percent(row.get(F_ADHERENCE)),
            conformance=parse_percent(row.get(F_CONFORMANCE)),
            exceptions=parse_count(row.get(F_EXCEPTIONS)),
        )


@dataclass(frozen=True)
class TimeSummaryRow:
    week: str
    group: str
    hours: float

    @classmethod
    def from_row(cls, row):
        return cls(
            week=text(row, F_WEEK),
            group=text(row, F_GROUP),
            hours=parse_float(row.get(F_HOURS)),
        )
