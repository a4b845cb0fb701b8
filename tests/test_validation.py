"""Tests for row filtering and required-table checks."""
from __future__ import annotations

import pytest

from engines.validation import MissingTableError, filter_tables, filtering_trace, is_template
from conftest import interaction_row, performance_row, status_row


def _tables(status=(), performance=(), interactions=()):
    return {'agentStatus': list(status), 'agentPerformance': list(performance),
            'interactions': list(interactions)}


def test_template_match_is_case_insensitive() -> None:
    assert is_template('Agent TEMPLATE 01')
    assert not is_template('Alice')
    assert not is_template('Alice', marker='')


def test_status_rows_need_positive_login_and_real_agent(sample_tables) -> None:
    filtered = filter_tables(sample_tables)
    assert [r.agent_name for r in filtered.agent_status] == ['Alice', 'Bob']
    assert filtered.totals['totalAgentStatusRows'] == 4
    assert filtered.totals['validAgentStatusRows'] == 2


def test_unparseable_login_text_is_dropped() -> None:
    filtered = filter_tables(_tables(status=[status_row('Eve', 'garbage'), status_row('Fay', '')]))
    assert filtered.agent_status == ()


def test_performance_rows_need_parseable_answered(sample_tables) -> None:
    filtered = filter_tables(sample_tables)
    assert [r.agent_name for r in filtered.agent_performance] == ['Alice', 'Bob']


def test_zero_answered_is_kept_negative_is_dropped() -> None:
    filtered = filter_tables(_tables(performance=[performance_row('Zed', '0'),
                                                  performance_row('Neg', '-2')]))
    assert [r.agent_name for r in filtered.agent_performance] == ['Zed']


def test_abandoned_interaction_without_agent_is_kept() -> None:
    filtered = filter_tables(_tables(interactions=[
        interaction_row(abandoned='YES', agent=''),
        interaction_row(direction='', queue='Sales'),
        interaction_row(queue=''),
    ]))
    assert len(filtered.interactions) == 1
    assert filtered.interactions[0].abandoned


def test_custom_template_marker() -> None:
    filtered = filter_tables(_tables(status=[status_row('Placeholder 1', '1:00:00.000'),
                                             status_row('Template Agent', '1:00:00.000')]),
                             template_marker='placeholder')
    assert [r.agent_name for r in filtered.agent_status] == ['Template Agent']


def test_missing_required_table_raises() -> None:
    with pytest.raises(MissingTableError) as exc:
        filter_tables({'agentStatus': [], 'interactions': None})
    assert exc.value.missing == ['agentPerformance', 'interactions']
    assert 'agentPerformance' in str(exc.value)


def test_missing_table_error_is_a_value_error() -> None:
    with pytest.raises(ValueError):
        filter_tables({})


def test_empty_tables_are_valid() -> None:
    filtered = filter_tables(_tables())
    assert filtered.interactions == ()
    assert filtered.adherence == ()
    assert filtered.totals['totalInteractions'] == 0


def test_filtering_trace_reports_counts(sample_tables) -> None:
    trace = filtering_trace(filter_tables(sample_tables))
    assert trace['values']['validInteractions'] == 10
    assert trace['values']['totalInteractions'] == 11
    assert 'Status 2/4' in trace['calculation']
