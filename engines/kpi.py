"""
Call Center KPI Engine - KPI Calculators
One pure function per metric. Each consumes the already-filtered rows and
returns a MetricResult carrying a calculation trace for manual verification.

Formulas:
  Total Calls            = count(interactions where abandoned = NO)
  Transfer Rate          = Σ transferred / Σ answered            (performance rows)
  Abandonment Rate       = abandoned inbound / inbound            (interactions)
  ASA                    = Σ queue wait / answered inbound
  AHT                    = Σ (handle + ACW) / answered inbound
  Productive Utilization = Σ (handle + ACW), all answered / Σ logged in
  On-Queue Utilization   = Σ on queue / Σ logged in              (status rows)
  Shrinkage              = Σ (break+meal+away+not resp.+off queue) / Σ logged in

Durations are seconds throughout. Any zero denominator yields 0.
"""
from dataclasses import dataclass, field
from typing import Any, Optional

from engines.duration import format_duration, to_minutes
from engines.reconciliation import answered_calls_finding, select_source


@dataclass(frozen=True)
class CalculationTrace:
    formula: str
    values: dict
    calculation: str
    result: Any

    def to_dict(self):
        return {'formula': self.formula, 'values': self.values,
                'calculation': self.calculation, 'result': self.result}


@dataclass(frozen=True)
class MetricResult:
    key: str
    label: str
    value: float
    unit: str
    trace: CalculationTrace
    source: Optional[Any] = field(default=None)

    def to_dict(self):
        d = {'key': self.key, 'label': self.label, 'value': self.value,
             'unit': self.unit, 'trace': self.trace.to_dict()}
        if self.source is not None:
            d['source'] = self.source.to_dict()
        return d


def ratio(numerator, denominator):
    if not denominator:
        return 0.0
    return numerator / denominator


def percent(numerator, denominator):
    return ratio(numerator, denominator) * 100


def _answered_inbound(interactions):
    return [c for c in interactions if c.inbound and c.answered]


# ══════════════════════════════════════════════════════════════
#  CALL VOLUME
# ══════════════════════════════════════════════════════════════

def calc_total_calls(interactions, performance, params):
    answered = sum(1 for c in interactions if c.answered)
    abandoned = len(interactions) - answered
    perf_total = sum(p.answered for p in performance)

    finding = answered_calls_finding(performance, interactions, params)
    selection = select_source(
        'totalCalls',
        chosen=('interactions', answered, answered),
        alternative=('agentPerformance', perf_total, perf_total),
        finding=finding,
    )
    trace = CalculationTrace(
        formula='Count of answered interactions (authoritative source for call volume)',
        values={
            'totalInteractions': len(interactions),
            'answeredInteractions': answered,
            'abandonedInteractions': abandoned,
            'agentPerformanceTotal': perf_total,
            'discrepancyFromAgentData': answered - perf_total,
            'dataSourceUsed': 'interactions',
        },
        calculation=f"{len(interactions)} interactions - {abandoned} abandoned = {answered} answered calls",
        result=answered,
    )
    return MetricResult('totalCalls', 'Total Calls', answered, 'count', trace, selection)


def calc_transfer_rate(performance, interactions, params):
    """Transfers and answered calls both come from performance rows; the
    interaction-based denominator is disclosed as the alternative."""
    transferred = sum(p.transferred for p in performance)
    perf_answered = sum(p.answered for p in performance)
    inter_answered = sum(1 for c in interactions if c.answered)

    rate = percent(transferred, perf_answered)
    mixed_rate = percent(transferred, inter_answered)

    finding = answered_calls_finding(performance, interactions, params)
    selection = select_source(
        'transferRate',
        chosen=('agentPerformance', perf_answered, rate),
        alternative=('interactions', inter_answered, mixed_rate),
        finding=finding,
    )
    understatement = ratio(rate - mixed_rate, rate) * 100
    trace = CalculationTrace(
        formula='(Σ Transferred ÷ Σ Answered) × 100, both from Agent Performance',
        values={
            'totalTransferred': transferred,
            'totalAnswered': perf_answered,
            'rateCalculationBasis': 'agentPerformance',
            'agentPerformanceRate': rate,
            'mixedSourceRate': mixed_rate,
            'interactionsAnswered': inter_answered,
            'potentialUnderstatementPct': round(understatement, 1),
        },
        calculation=(f"({transferred} transferred ÷ {perf_answered} answered) × 100 = {rate:.2f}% | "
                     f"alternative ÷ {inter_answered} interaction answers = {mixed_rate:.2f}%"),
        result=rate,
    )
    return MetricResult('transferRate', 'Transfer Rate', rate, '%', trace, selection)


def calc_abandonment_rate(interactions):
    inbound = [c for c in interactions if c.inbound]
    abandoned = sum(1 for c in inbound if c.abandoned)
    rate = percent(abandoned, len(inbound))
    trace = CalculationTrace(
        formula='(Abandoned Inbound Calls ÷ Total Inbound Calls) × 100 [inbound only]',
        values={
            'totalInteractions': len(interactions),
            'totalInboundCalls': len(inbound),
            'outboundCallsExcluded': len(interactions) - len(inbound),
            'abandonedInboundCalls': abandoned,
            'answeredInboundCalls': sum(1 for c in inbound if c.answered),
        },
        calculation=f"({abandoned} abandoned ÷ {len(inbound)} inbound calls) × 100 = {rate:.2f}%",
        result=rate,
    )
    return MetricResult('abandonmentRate', 'Abandonment Rate', rate, '%', trace)


# ══════════════════════════════════════════════════════════════
#  TIMING
# ══════════════════════════════════════════════════════════════

def calc_avg_speed_of_answer(interactions, sample_size=5):
    answered = _answered_inbound(interactions)
    total_wait = sum(c.queue_wait for c in answered)
    asa = ratio(total_wait, len(answered))
    trace = CalculationTrace(
        formula='Σ(Queue Wait of answered inbound calls) ÷ Number of answered inbound calls',
        values={
            'answeredInboundCalls': len(answered),
            'totalQueueTimeSeconds': total_wait,
            'totalQueueTimeMinutes': to_minutes(total_wait),
            'sampleQueueTimesSeconds': [c.queue_wait for c in answered[:sample_size]],
            'averageMinutes': to_minutes(asa),
        },
        calculation=f"{total_wait:.2f} queue seconds ÷ {len(answered)} answered calls = {asa:.2f} seconds ({format_duration(asa)})",
        result=asa,
    )
    return MetricResult('avgSpeedOfAnswer', 'Average Speed of Answer', asa, 'seconds', trace)


def calc_avg_handle_time(interactions, sample_size=5):
    answered = _answered_inbound(interactions)
    total_handle = sum(c.handle for c in answered)
    total_acw = sum(c.acw for c in answered)
    total = total_handle + total_acw
    aht = ratio(total, len(answered))
    trace = CalculationTrace(
        formula='Σ(Handle Time + ACW Time) ÷ Number of answered inbound calls',
        values={
            'handledCalls': len(answered),
            'totalHandleSeconds': total_handle,
            'totalAcwSeconds': total_acw,
            'totalHandleTimeSeconds': total,
            'totalHandleTimeMinutes': to_minutes(total),
            'sampleHandleTimesSeconds': [c.work_time for c in answered[:sample_size]],
            'averageMinutes': to_minutes(aht),
        },
        calculation=f"{total:.2f} handle+ACW seconds ÷ {len(answered)} handled calls = {aht:.2f} seconds ({format_duration(aht)})",
        result=aht,
    )
    return MetricResult('avgHandleTime', 'Average Handle Time', aht, 'seconds', trace)


# ══════════════════════════════════════════════════════════════
#  UTILIZATION & SHRINKAGE
# ══════════════════════════════════════════════════════════════

def calc_productive_utilization(interactions, status):
    answered = [c for c in interactions if c.answered]
    productive = sum(c.work_time for c in answered)
    logged = sum(s.logged_in for s in status)
    util = percent(productive, logged)
    trace = CalculationTrace(
        formula='Σ(Handle + ACW of all answered interactions) ÷ Σ(Agent Logged In Time) × 100',
        values={
            'totalProductiveTimeSeconds': productive,
            'totalLoggedTimeSeconds': logged,
            'productiveCallsAnalyzed': len(answered),
        },
        calculation=f"({productive:.1f} ÷ {logged:.1f}) × 100 = {util:.2f}%",
        result=util,
    )
    return MetricResult('productiveUtilization', 'Productive Utilization', util, '%', trace)


def calc_on_queue_utilization(status, sample_size=5):
    on_queue = sum(s.on_queue for s in status)
    logged = sum(s.logged_in for s in status)
    util = percent(on_queue, logged)
    samples = [{'agent': s.agent_name,
                'loggedSeconds': s.logged_in,
                'onQueueSeconds': s.on_queue,
                'utilization': round(percent(s.on_queue, s.logged_in), 1)}
               for s in status[:sample_size]]
    trace = CalculationTrace(
        formula='Σ(On-Queue Time) ÷ Σ(Agent Logged In Time) × 100',
        values={
            'totalOnQueueTimeSeconds': on_queue,
            'totalLoggedTimeSeconds': logged,
            'utilizationSamples': samples,
        },
        calculation=f"({on_queue:.1f} ÷ {logged:.1f}) × 100 = {util:.2f}%",
        result=util,
    )
    return MetricResult('onQueueUtilization', 'On-Queue Utilization', util, '%', trace)


def calc_shrinkage(status, sample_size=5):
    brk = sum(s.break_ for s in status)
    meal = sum(s.meal for s in status)
    away = sum(s.away for s in status)
    not_resp = sum(s.not_responding for s in status)
    off_queue = sum(s.off_queue for s in status)
    shrink_time = brk + meal + away + not_resp + off_queue
    logged = sum(s.logged_in for s in status)
    shrinkage = percent(shrink_time, logged)
    samples = [{'agent': s.agent_name,
                'shrinkage': round(percent(s.shrinkage_time, s.logged_in), 1),
                'breakSeconds': s.break_, 'mealSeconds': s.meal, 'awaySeconds': s.away}
               for s in status[:sample_size]]
    trace = CalculationTrace(
        formula='(Break + Meal + Away + Not Responding + Off Queue) ÷ Logged In Time × 100',
        values={
            'totalBreakSeconds': brk,
            'totalMealSeconds': meal,
            'totalAwaySeconds': away,
            'totalNotRespondingSeconds': not_resp,
            'totalOffQueueSeconds': off_queue,
            'totalShrinkageSeconds': shrink_time,
            'totalLoggedTimeSeconds': logged,
            'agentSamples': samples,
        },
        calculation=(f"({brk:.1f} + {meal:.1f} + {away:.1f} + {not_resp:.1f} + {off_queue:.1f}) "
                     f"÷ {logged:.1f} × 100 = {shrinkage:.2f}%"),
        result=shrinkage,
    )
    return MetricResult('shrinkage', 'Shrinkage', shrinkage, '%', trace)


def calculate_all(filtered, params):
    """Run every core calculator over one FilteredTables snapshot, in report order."""
    n = params.get('sampleSize', 5)
    status = filtered.agent_status
    perf = filtered.agent_performance
    inter = filtered.interactions
    return [
        calc_total_calls(inter, perf, params),
        calc_transfer_rate(perf, inter, params),
        calc_abandonment_rate(inter),
        calc_avg_speed_of_answer(inter, n),
        calc_avg_handle_time(inter, n),
        calc_productive_utilization(inter, status),
        calc_on_queue_utilization(status, n),
        calc_shrinkage(status, n),
    ]
