"""
Call Center KPI Engine - Row Validator
Filters each table once into the rows usable for aggregation. Every calculator
reads the same filtered tuples so denominators agree across metrics.
"""
from dataclasses import dataclass

from engines.duration import ZERO_SENTINEL
from engines.records import (
    AGENT_STATUS, AGENT_PERFORMANCE, INTERACTIONS, ADHERENCE, TIME_SUMMARY,
    REQUIRED_TABLES,
    AgentStatusRow, AgentPerformanceRow, InteractionRow, AdherenceRow, TimeSummaryRow,
)

DEFAULT_TEMPLATE_MARKER = 'Template'


class MissingTableError(ValueError):
    """A required input table was not supplied at all."""

    def __init__(self, missing):
        self.missing = list(missing)
        super().__init__(f"Missing required table(s): {', '.join(self.missing)}")


@dataclass(frozen=True)
class FilteredTables:
    agent_status: tuple
    agent_performance: tuple
    interactions: tuple
    adherence: tuple
    time_summary: tuple
    totals: dict


def is_template(name, marker=DEFAULT_TEMPLATE_MARKER):
    if not name or not marker:
        return False
    return marker.lower() in name.lower()


def valid_agent_status(row, marker=DEFAULT_TEMPLATE_MARKER):
    if not row.logged_in_text or row.logged_in_text == ZERO_SENTINEL:
        return False
    if row.logged_in <= 0:
        return False
    return not is_template(row.agent_name, marker)


def valid_agent_performance(row, marker=DEFAULT_TEMPLATE_MARKER):
    if row.answered is None or row.answered < 0:
        return False
    return not is_template(row.agent_name, marker)


def valid_interaction(row):
    # No agent-assignment check: abandoned contacts never have an agent.
    return bool(row.direction) and bool(row.queue)


def check_required(tables):
    missing = [k for k in REQUIRED_TABLES if tables.get(k) is None]
    if missing:
        raise MissingTableError(missing)


def filter_tables(tables, template_marker=DEFAULT_TEMPLATE_MARKER):
    """Build typed records from raw row mappings and keep the valid ones.

    Args:
        tables: mapping of table key -> sequence of {field: text} rows.
            Required keys must be present (an empty list is fine); optional
            tables default to empty.
        template_marker: substring (case-insensitive) marking placeholder agents.

    Returns:
        FilteredTables with one tuple per table plus raw/valid row counts.
    """
    check_required(tables)

    raw_status = list(tables.get(AGENT_STATUS) or [])
    raw_perf = list(tables.get(AGENT_PERFORMANCE) or [])
    raw_inter = list(tables.get(INTERACTIONS) or [])
    raw_adh = list(tables.get(ADHERENCE) or [])
    raw_time = list(tables.get(TIME_SUMMARY) or [])

    status = tuple(r for r in (AgentStatusRow.from_row(x) for x in raw_status)
                   if valid_agent_status(r, template_marker))
    perf = tuple(r for r in (AgentPerformanceRow.from_row(x) for x in raw_perf)
                 if valid_agent_performance(r, template_marker))
    inter = tuple(r for r in (InteractionRow.from_row(x) for x in raw_inter)
                  if valid_interaction(r))
    adh = tuple(r for r in (AdherenceRow.from_row(x) for x in raw_adh)
                if not is_template(r.agent_name, template_marker))
    time_rows = tuple(TimeSummaryRow.from_row(x) for x in raw_time)

    totals = {
        'totalAgentStatusRows': len(raw_status), 'validAgentStatusRows': len(status),
        'totalAgentPerformanceRows': len(raw_perf), 'validAgentPerformanceRows': len(perf),
        'totalInteractions': len(raw_inter), 'validInteractions': len(inter),
        'totalAdherenceRows': len(raw_adh), 'validAdherenceRows': len(adh),
        'totalTimeSummaryRows': len(raw_time), 'validTimeSummaryRows': len(time_rows),
    }
    return FilteredTables(
        agent_status=status, agent_performance=perf, interactions=inter,
        adherence=adh, time_summary=time_rows, totals=totals,
    )


def filtering_trace(filtered):
    t = filtered.totals
    return {
        'formula': 'Filter out templates, zero-login agents, unparseable answered counts and interactions without direction/queue',
        'values': dict(t),
        'calculation': (f"Status {t['validAgentStatusRows']}/{t['totalAgentStatusRows']}, "
                        f"Performance {t['validAgentPerformanceRows']}/{t['totalAgentPerformanceRows']}, "
                        f"Interactions {t['validInteractions']}/{t['totalInteractions']} rows kept"),
        'result': (f"Performance: {t['validAgentPerformanceRows']}, Status: {t['validAgentStatusRows']}, "
                   f"Interactions: {t['validInteractions']}"),
    }
