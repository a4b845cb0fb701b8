"""
Call Center KPI Engine - Reconciliation Engine
Cross-checks figures derived independently from two source tables and
classifies how far apart they are.

  discrepancy    = |A - B|
  discrepancyPct = discrepancy / max(A, ε) × 100

Severity: ≤5% acceptable, ≤30% warning, above that critical. Findings are
always returned to the caller; nothing here picks a winner by guessing.
"""
from dataclasses import dataclass

EPSILON = 1.0

ACCEPTABLE = 'acceptable'
WARNING = 'warning'
CRITICAL = 'critical'
SEVERITY_ORDER = {ACCEPTABLE: 0, WARNING: 1, CRITICAL: 2}

DEFAULT_ACCEPTABLE_PCT = 5.0
DEFAULT_WARNING_PCT = 30.0
REVIEW_PCT = 10.0


@dataclass(frozen=True)
class ReconciliationFinding:
    quantity: str
    source_a: str
    total_a: float
    source_b: str
    total_b: float
    discrepancy: float
    discrepancy_pct: float
    severity: str
    recommended_action: str
    message: str
    details: dict = None

    def to_dict(self):
        d = {
            'quantity': self.quantity,
            'sourceA': self.source_a, 'totalA': self.total_a,
            'sourceB': self.source_b, 'totalB': self.total_b,
            'discrepancy': self.discrepancy,
            'discrepancyPct': round(self.discrepancy_pct, 2),
            'severity': self.severity,
            'recommendedAction': self.recommended_action,
            'message': self.message,
        }
        if self.details:
            d['details'] = self.details
        return d


@dataclass(frozen=True)
class SourceSelection:
    metric: str
    chosen_source: str
    chosen_basis: float
    chosen_value: float
    alternative_source: str
    alternative_basis: float
    alternative_value: float
    discrepancy_pct: float
    severity: str

    def to_dict(self):
        return {
            'metric': self.metric,
            'chosenSource': self.chosen_source,
            'chosenBasis': self.chosen_basis,
            'chosenValue': self.chosen_value,
            'alternativeSource': self.alternative_source,
            'alternativeBasis': self.alternative_basis,
            'alternativeValue': self.alternative_value,
            'discrepancyPct': round(self.discrepancy_pct, 2),
            'severity': self.severity,
        }


def discrepancy_pct(total_a, total_b):
    return abs(total_a - total_b) / max(total_a, EPSILON) * 100


def classify(pct, acceptable_pct=DEFAULT_ACCEPTABLE_PCT, warning_pct=DEFAULT_WARNING_PCT):
    if pct <= acceptable_pct:
        return ACCEPTABLE
    if pct <= warning_pct:
        return WARNING
    return CRITICAL


def recommended_action(pct, warning_pct=DEFAULT_WARNING_PCT):
    if pct > warning_pct:
        return 'URGENT: Investigate missing agent data'
    if pct > REVIEW_PCT:
        return 'Review data export timeframes'
    return 'Monitor trends'


def _thresholds(params):
    params = params or {}
    return (params.get('acceptableVariancePct', DEFAULT_ACCEPTABLE_PCT),
            params.get('warningVariancePct', DEFAULT_WARNING_PCT))


def reconcile(quantity, source_a, total_a, source_b, total_b, params=None, details=None):
    """Compare two totals for the same real-world quantity. Source A is the reference."""
    acceptable_pct, warning_pct = _thresholds(params)
    diff = abs(total_a - total_b)
    pct = discrepancy_pct(total_a, total_b)
    severity = classify(pct, acceptable_pct, warning_pct)
    if severity == CRITICAL:
        msg = f"{pct:.2f}% discrepancy - urgent data issue"
    elif severity == WARNING:
        msg = f"{pct:.2f}% discrepancy - data integrity issue"
    else:
        msg = f"{pct:.2f}% variance - acceptable"
    return ReconciliationFinding(
        quantity=quantity, source_a=source_a, total_a=total_a,
        source_b=source_b, total_b=total_b, discrepancy=diff,
        discrepancy_pct=pct, severity=severity,
        recommended_action=recommended_action(pct, warning_pct),
        message=f"{source_a}: {total_a:g} vs {source_b}: {total_b:g} = {diff:g} difference ({msg})",
        details=details,
    )


def select_source(metric, chosen, alternative, finding):
    """Record the consistent source used for a metric and what the other would give.

    chosen/alternative are (source name, basis total, resulting metric value);
    the finding supplies the discrepancy between the two bases.
    """
    c_src, c_basis, c_val = chosen
    a_src, a_basis, a_val = alternative
    return SourceSelection(
        metric=metric,
        chosen_source=c_src, chosen_basis=c_basis, chosen_value=c_val,
        alternative_source=a_src, alternative_basis=a_basis, alternative_value=a_val,
        discrepancy_pct=finding.discrepancy_pct, severity=finding.severity,
    )


# ══════════════════════════════════════════════════════════════
#  STANDARD CROSS-CHECKS
# ══════════════════════════════════════════════════════════════

def answered_calls_finding(performance, interactions, params=None):
    perf_total = sum(p.answered for p in performance)
    inter_total = sum(1 for c in interactions if c.answered)
    return reconcile('answeredCalls', 'agentPerformance', perf_total,
                     'interactions', inter_total, params)


def handle_time_finding(performance, interactions, params=None):
    # Performance only carries an average, so its total is avg × answered.
    perf_total = sum(p.avg_handle * p.answered for p in performance)
    inter_total = sum(c.handle for c in interactions if c.answered)
    return reconcile('handleTimeSeconds', 'agentPerformance', round(perf_total, 3),
                     'interactions', round(inter_total, 3), params)


def agent_coverage_finding(status, performance, calls_finding, params=None):
    """Agents present in status but absent from performance, with the call gap
    spread across them as a rough per-agent estimate."""
    status_agents = len(status)
    perf_agents = len(performance)
    missing = status_agents - perf_agents
    details = {
        'statusAgents': status_agents,
        'performanceAgents': perf_agents,
        'missingAgents': missing,
        'possibleCallsPerMissingAgent': round(calls_finding.discrepancy / missing) if missing > 0 else 0,
    }
    return reconcile('agentCoverage', 'agentStatus', status_agents,
                     'agentPerformance', perf_agents, params, details=details)


def run_reconciliation(filtered, params=None):
    """All standard findings for one FilteredTables snapshot, in fixed order."""
    perf = filtered.agent_performance
    inter = filtered.interactions
    calls = answered_calls_finding(perf, inter, params)
    handle = handle_time_finding(perf, inter, params)
    coverage = agent_coverage_finding(filtered.agent_status, perf, calls, params)
    return [calls, handle, coverage]


def worst_severity(findings):
    if not findings:
        return ACCEPTABLE
    return max((f.severity for f in findings), key=SEVERITY_ORDER.get)
