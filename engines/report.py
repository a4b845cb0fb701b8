"""
Call Center KPI Engine - Metrics Report Assembler
Single entry point: compute_report(tables) -> JSON-ready dict.

Pipeline: filter rows once -> KPI calculators -> reconciliation cross-checks
-> auxiliary breakdowns -> optional baseline comparison. Stateless; identical
input tables always give an identical report.
"""
import copy
import logging
import math

from engines.breakdowns import run_breakdowns
from engines.kpi import calculate_all
from engines.reconciliation import (
    ACCEPTABLE, WARNING, CRITICAL, run_reconciliation, worst_severity,
)
from engines.validation import filter_tables, filtering_trace

log = logging.getLogger(__name__)

DEFAULT_PARAMS = {
    'acceptableVariancePct': 5.0,
    'warningVariancePct': 30.0,
    'templateMarker': 'Template',
    'slaThresholdsSec': [30, 60],
    'topQueuePool': 15,
    'topQueueCount': 9,
    'excludedQueueMarker': 'backline',
    'performerCount': 10,
    'sampleSize': 5,
    'baselineTolerances': {'totalCalls': 100, '_default': 0.1},
}


def default_params():
    return copy.deepcopy(DEFAULT_PARAMS)


def merge_params(params=None):
    """Merge caller params over the defaults, coercing each known key to the
    type of its default. Raises ValueError for values that cannot be coerced."""
    if params is not None and not isinstance(params, dict):
        raise ValueError(f"params must be a mapping, got {type(params).__name__}")
    p = default_params()
    for key, val in (params or {}).items():
        if val is None:
            continue
        p[key] = _coerce_param(key, val, DEFAULT_PARAMS.get(key))
    return p


def _number(key, val):
    if isinstance(val, bool):
        raise ValueError(f"Parameter {key} must be a number, got {val!r}")
    try:
        num = float(val)
    except (TypeError, ValueError):
        raise ValueError(f"Parameter {key} must be a number, got {val!r}") from None
    if not math.isfinite(num) or num < 0:
        raise ValueError(f"Parameter {key} must be a finite non-negative number, got {val!r}")
    return num


def _coerce_param(key, val, default):
    if default is None:
        # unknown keys pass through untouched
        return val
    if isinstance(default, str):
        if not isinstance(val, str):
            raise ValueError(f"Parameter {key} must be text, got {val!r}")
        return val
    if isinstance(default, int):
        num = _number(key, val)
        if not num.is_integer():
            raise ValueError(f"Parameter {key} must be a whole number, got {val!r}")
        return int(num)
    if isinstance(default, float):
        return _number(key, val)
    if isinstance(default, list):
        if not isinstance(val, (list, tuple)):
            raise ValueError(f"Parameter {key} must be a list, got {val!r}")
        return [_number(key, v) for v in val]
    if isinstance(default, dict):
        if not isinstance(val, dict):
            raise ValueError(f"Parameter {key} must be an object, got {val!r}")
        return {str(k): _number(key, v) for k, v in val.items()}
    return val


def compute_report(tables, params=None, baseline=None, logger=None):
    """Compute every KPI, cross-check and breakdown for one snapshot of tables.

    Args:
        tables: mapping with 'agentStatus', 'agentPerformance', 'interactions'
            (required, may be empty lists) and optional 'adherence',
            'timeSummary'. Each is a sequence of {field name: text} rows.
        params: partial parameter dict merged over DEFAULT_PARAMS.
        baseline: optional {metric key: reference value} to sanity-check against.
        logger: logging.Logger-compatible sink; defaults to this module's logger.

    Raises:
        MissingTableError: a required table is absent (configuration error).
    """
    logger = logger or log
    p = merge_params(params)

    filtered = filter_tables(tables, p.get('templateMarker'))
    t = filtered.totals
    logger.info(f"Filtered rows: status {t['validAgentStatusRows']}/{t['totalAgentStatusRows']}, "
                f"performance {t['validAgentPerformanceRows']}/{t['totalAgentPerformanceRows']}, "
                f"interactions {t['validInteractions']}/{t['totalInteractions']}")

    metrics = calculate_all(filtered, p)
    for m in metrics:
        logger.debug(f"{m.key}: {m.trace.calculation}")

    findings = run_reconciliation(filtered, p)
    for f in findings:
        if f.severity != ACCEPTABLE:
            logger.warning(f"[{f.severity.upper()}] {f.quantity}: {f.message}. {f.recommended_action}")

    selections = {m.key: m.source for m in metrics if m.source is not None}
    for sel in selections.values():
        if sel.severity != ACCEPTABLE:
            logger.warning(f"{sel.metric} uses {sel.chosen_source} ({sel.chosen_value:.2f}); "
                           f"{sel.alternative_source} would give {sel.alternative_value:.2f}")

    summary = {m.key: m.value for m in metrics}
    auxiliary = run_breakdowns(filtered, p)
    for key, sl in auxiliary['serviceLevels'].items():
        summary[key] = sl['value']

    comparison = compare_baseline(summary, baseline, p.get('baselineTolerances'), logger) if baseline else None

    logger.info(f"Report: {summary['totalCalls']} calls, transfer {summary['transferRate']:.2f}%, "
                f"abandon {summary['abandonmentRate']:.2f}%, data quality {worst_severity(findings)}")

    return {
        'metrics': {m.key: m.to_dict() for m in metrics},
        'reconciliation': [f.to_dict() for f in findings],
        'sourceSelections': {k: s.to_dict() for k, s in selections.items()},
        'dataQuality': _data_quality(findings, selections),
        'dataFiltering': filtering_trace(filtered),
        'auxiliary': auxiliary,
        'baselineComparison': comparison,
        'summary': summary,
    }


def _data_quality(findings, selections):
    counts = {ACCEPTABLE: 0, WARNING: 0, CRITICAL: 0}
    for f in findings:
        counts[f.severity] += 1
    return {
        'worstSeverity': worst_severity(findings),
        'counts': counts,
        'trustworthy': {k: s.severity == ACCEPTABLE for k, s in selections.items()},
    }


# ══════════════════════════════════════════════════════════════
#  BASELINE COMPARISON
# ══════════════════════════════════════════════════════════════

def _baseline_value(key, val):
    if isinstance(val, bool):
        raise ValueError(f"Baseline value for {key} must be a number, got {val!r}")
    try:
        num = float(val)
    except (TypeError, ValueError):
        raise ValueError(f"Baseline value for {key} must be a number, got {val!r}") from None
    if not math.isfinite(num):
        raise ValueError(f"Baseline value for {key} must be finite, got {val!r}")
    return num


def compare_baseline(summary, baseline, tolerances=None, logger=None):
    """Check computed figures against an injected reference set.

    Only metrics present in both sides are compared. Verdict is 'all_passed',
    'mostly_passed' (at least 80%), 'failed', or 'not_compared' when nothing overlaps.
    """
    logger = logger or log
    tolerances = tolerances or DEFAULT_PARAMS['baselineTolerances']
    default_tol = tolerances.get('_default', 0.1)

    checks = []
    for key in sorted(baseline):
        if key not in summary:
            continue
        calculated = round(summary[key], 2)
        reference = _baseline_value(key, baseline[key])
        tol = tolerances.get(key, default_tol)
        diff = abs(calculated - reference)
        passed = diff < tol
        if not passed:
            logger.warning(f"Baseline mismatch {key}: {calculated} vs {reference} (tolerance {tol})")
        checks.append({'metric': key, 'calculated': calculated, 'baseline': reference,
                       'difference': round(diff, 4), 'tolerance': tol, 'passed': passed})

    passed_count = sum(1 for c in checks if c['passed'])
    total = len(checks)
    if not total:
        verdict = 'not_compared'
    elif passed_count == total:
        verdict = 'all_passed'
    elif passed_count >= total * 0.8:
        verdict = 'mostly_passed'
    else:
        verdict = 'failed'
    return {'checks': checks, 'passed': passed_count, 'total': total, 'verdict': verdict}
