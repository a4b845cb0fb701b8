"""Tests for the KPI calculators."""
from __future__ import annotations

import pytest

from engines.kpi import (
    calc_abandonment_rate, calc_avg_handle_time, calc_avg_speed_of_answer,
    calc_on_queue_utilization, calc_productive_utilization, calc_shrinkage,
    calc_total_calls, calc_transfer_rate, calculate_all,
)
from engines.records import AgentPerformanceRow, AgentStatusRow, InteractionRow
from engines.validation import filter_tables
from conftest import interaction_row, performance_row, status_row


def _calls(*rows):
    return [InteractionRow.from_row(r) for r in rows]


def _status(*rows):
    return [AgentStatusRow.from_row(r) for r in rows]


def _perf(*rows):
    return [AgentPerformanceRow.from_row(r) for r in rows]


def test_abandonment_rate_and_total_calls() -> None:
    rows = [interaction_row() for _ in range(9)] + [interaction_row(abandoned='YES')]
    calls = _calls(*rows)

    abandonment = calc_abandonment_rate(calls)
    total = calc_total_calls(calls, [], {})

    assert abandonment.value == pytest.approx(10.0)
    assert total.value == 9
    assert total.trace.values['abandonedInteractions'] == 1


def test_abandonment_ignores_outbound() -> None:
    calls = _calls(interaction_row(abandoned='YES'), interaction_row(),
                   interaction_row(direction='Outbound', abandoned='YES'))
    result = calc_abandonment_rate(calls)
    assert result.value == pytest.approx(50.0)
    assert result.trace.values['outboundCallsExcluded'] == 1


def test_on_queue_utilization_excludes_zero_login_agents() -> None:
    filtered = filter_tables({
        'agentStatus': [
            status_row('A', '1:00:00.000', on_queue='0:30:00.000'),
            status_row('B', '2:00:00.000', on_queue='1:00:00.000'),
            status_row('C', '0:00:00.000'),
        ],
        'agentPerformance': [], 'interactions': [],
    })
    result = calc_on_queue_utilization(filtered.agent_status)
    assert result.value == pytest.approx(50.0)
    assert len(result.trace.values['utilizationSamples']) == 2


def test_asa_and_aht_use_answered_inbound_only() -> None:
    calls = _calls(
        interaction_row(wait='0:00:20.000', handle='0:04:00.000', acw='0:01:00.000'),
        interaction_row(wait='0:00:40.000', handle='0:06:00.000', acw='0:01:00.000'),
        interaction_row(abandoned='YES', wait='0:05:00.000'),
        interaction_row(direction='Outbound', wait='0:10:00.000', handle='0:20:00.000'),
    )
    asa = calc_avg_speed_of_answer(calls)
    aht = calc_avg_handle_time(calls)

    assert asa.value == pytest.approx(30.0)
    assert asa.unit == 'seconds'
    assert asa.trace.values['answeredInboundCalls'] == 2
    assert aht.value == pytest.approx(360.0)
    assert '0:06:00' in aht.trace.calculation


def test_transfer_rate_uses_performance_for_both_terms() -> None:
    perf = _perf(performance_row('A', '80', transferred='8'),
                 performance_row('B', '20', transferred='2'))
    calls = _calls(*[interaction_row() for _ in range(120)])

    result = calc_transfer_rate(perf, calls, {})

    assert result.value == pytest.approx(10.0)
    assert result.trace.values['rateCalculationBasis'] == 'agentPerformance'
    assert result.trace.values['mixedSourceRate'] == pytest.approx(10 / 120 * 100)
    assert result.source.chosen_source == 'agentPerformance'
    assert result.source.alternative_source == 'interactions'
    assert result.source.severity == 'warning'


def test_productive_utilization_counts_all_answered() -> None:
    calls = _calls(
        interaction_row(handle='0:10:00.000', acw='0:05:00.000'),
        interaction_row(direction='Outbound', handle='0:15:00.000'),
        interaction_row(abandoned='YES', handle='0:30:00.000'),
    )
    status = _status(status_row('A', '1:00:00.000'))
    result = calc_productive_utilization(calls, status)
    assert result.value == pytest.approx(50.0)


def test_shrinkage_sums_non_productive_states() -> None:
    status = _status(status_row('A', '1:00:00.000', brk='0:06:00.000', meal='0:06:00.000',
                                away='0:03:00.000', not_responding='0:03:00.000',
                                off_queue='0:06:00.000'))
    result = calc_shrinkage(status)
    assert result.value == pytest.approx(40.0)
    assert result.trace.values['totalShrinkageSeconds'] == 1440


def test_zero_denominators_yield_zero() -> None:
    filtered = filter_tables({'agentStatus': [], 'agentPerformance': [], 'interactions': []})
    results = calculate_all(filtered, {})
    assert [r.value for r in results] == [0] * 8


def test_calculate_all_order_and_values(sample_tables) -> None:
    results = {r.key: r.value for r in calculate_all(filter_tables(sample_tables), {})}
    assert list(results) == [
        'totalCalls', 'transferRate', 'abandonmentRate', 'avgSpeedOfAnswer',
        'avgHandleTime', 'productiveUtilization', 'onQueueUtilization', 'shrinkage',
    ]
    assert results['totalCalls'] == 9
    assert results['transferRate'] == pytest.approx(25.0)
    assert results['abandonmentRate'] == pytest.approx(100 / 9)
    assert results['avgSpeedOfAnswer'] == pytest.approx(45.0)
    assert results['avgHandleTime'] == pytest.approx(360.0)
    assert results['productiveUtilization'] == pytest.approx(3000 / 14400 * 100)
    assert results['onQueueUtilization'] == pytest.approx(62.5)
    assert results['shrinkage'] == pytest.approx(37.5)


def test_sample_size_limits_trace_samples() -> None:
    calls = _calls(*[interaction_row(wait='0:00:10.000') for _ in range(8)])
    result = calc_avg_speed_of_answer(calls, sample_size=3)
    assert result.trace.values['sampleQueueTimesSeconds'] == [10.0, 10.0, 10.0]


def test_abandonment_is_zero_without_inbound_calls() -> None:
    calls = _calls(interaction_row(direction='Outbound', abandoned='YES'))
    assert calc_abandonment_rate(calls).value == 0.0
