"""
Call Center KPI Engine - Auxiliary Breakdowns
Service level, queue ranking, agent performers and utilization distribution,
plus rollups of the optional adherence and time-summary tables.
"""
from collections import defaultdict

from engines.kpi import CalculationTrace, MetricResult, percent, ratio


def calc_service_level(interactions, threshold_sec):
    """% of answered inbound calls picked up within threshold_sec.
    Same population as ASA so the two figures stay mathematically consistent."""
    answered = [c for c in interactions if c.inbound and c.answered]
    within = sum(1 for c in answered if c.queue_wait <= threshold_sec)
    sl = percent(within, len(answered))
    key = f"serviceLevel{threshold_sec:g}"
    trace = CalculationTrace(
        formula=f"(Answered inbound calls with queue wait ≤ {threshold_sec:g}s ÷ Answered inbound calls) × 100",
        values={'thresholdSeconds': threshold_sec, 'answeredInboundCalls': len(answered),
                'answeredWithinThreshold': within},
        calculation=f"({within} ÷ {len(answered)}) × 100 = {sl:.2f}%",
        result=sl,
    )
    return MetricResult(key, f"Service Level ({threshold_sec:g}s)", sl, '%', trace)


def top_queues(interactions, pool=15, count=9, excluded_marker='backline'):
    """Highest-volume queues, then the best abandonment performers among them."""
    stats = defaultdict(lambda: {'calls': 0, 'abandoned': 0})
    for c in interactions:
        st = stats[c.queue]
        st['calls'] += 1
        if c.abandoned:
            st['abandoned'] += 1

    marker = (excluded_marker or '').lower()
    queues = []
    for name, st in stats.items():
        if not name.strip() or name == 'Unknown':
            continue
        if marker and marker in name.lower():
            continue
        queues.append({'name': name, 'calls': st['calls'], 'abandoned': st['abandoned'],
                       'rate': percent(st['abandoned'], st['calls'])})

    by_volume = sorted(queues, key=lambda q: (-q['calls'], q['name']))[:pool]
    return sorted(by_volume, key=lambda q: (q['rate'], q['name']))[:count]


def agent_performers(performance, count=10):
    agents = []
    for p in performance:
        if p.answered <= 0:
            continue
        agents.append({
            'name': p.agent_name or 'Unknown',
            'calls': p.answered,
            'transferRate': percent(p.transferred, p.answered),
            'holdRate': percent(p.held, p.answered),
            'avgHandleTimeSeconds': p.avg_handle,
        })
    top = sorted(agents, key=lambda a: (-a['calls'], a['name']))[:count]
    bottom = sorted(agents, key=lambda a: (a['calls'], a['name']))[:count]
    return {'topPerformers': top, 'bottomPerformers': bottom}


def agent_utilization(status):
    rows = [{'name': s.agent_name or 'Unknown', 'utilization': percent(s.on_queue, s.logged_in)}
            for s in status]
    rows = [r for r in rows if r['utilization'] > 0]
    return sorted(rows, key=lambda r: (-r['utilization'], r['name']))


def adherence_summary(adherence):
    adh = [a.adherence for a in adherence if a.adherence is not None]
    conf = [a.conformance for a in adherence if a.conformance is not None]
    return {
        'agents': len(adherence),
        'avgAdherence': ratio(sum(adh), len(adh)),
        'avgConformance': ratio(sum(conf), len(conf)),
        'totalExceptions': sum(a.exceptions for a in adherence),
        'rowsWithAdherence': len(adh),
        'rowsWithConformance': len(conf),
    }


def time_summary(rows):
    by_week = defaultdict(float)
    by_group = defaultdict(float)
    for r in rows:
        by_week[r.week or 'Unknown'] += r.hours
        by_group[r.group or 'Unknown'] += r.hours
    return {
        'totalHours': sum(r.hours for r in rows),
        'hoursByWeek': [{'week': k, 'hours': by_week[k]} for k in sorted(by_week)],
        'hoursByGroup': [{'group': k, 'hours': by_group[k]} for k in sorted(by_group)],
    }


def run_breakdowns(filtered, params):
    """Auxiliary section of the report. Optional-table rollups are omitted when
    their table is empty."""
    inter = filtered.interactions
    service_levels = [calc_service_level(inter, t) for t in params.get('slaThresholdsSec', [30, 60])]
    result = {
        'serviceLevels': {m.key: m.to_dict() for m in service_levels},
        'topQueues': top_queues(inter, params.get('topQueuePool', 15),
                                params.get('topQueueCount', 9),
                                params.get('excludedQueueMarker', 'backline')),
        'agentUtilization': agent_utilization(filtered.agent_status),
    }
    result.update(agent_performers(filtered.agent_performance, params.get('performerCount', 10)))
    if filtered.adherence:
        result['adherence'] = adherence_summary(filtered.adherence)
    if filtered.time_summary:
        result['timeSummary'] = time_summary(filtered.time_summary)
    return result
