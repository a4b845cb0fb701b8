"""
Call Center KPI Engine - Flask API Server
Accepts uploaded export tables (already parsed into rows) or reads them from
the data directory, and returns the metrics report with calculation traces
and reconciliation findings. No state is kept between requests.
"""
import os
import logging
from flask import Flask, jsonify, request
from engines.data_loader import DATA_DIR, load_tables, load_parameters, load_baseline
from engines.records import REQUIRED_TABLES, OPTIONAL_TABLES
from engines.report import compute_report
from engines.validation import MissingTableError

app = Flask(__name__)
log = logging.getLogger(__name__)


def _data_dir():
    return os.environ.get('KPI_DATA_DIR') or DATA_DIR


def _parse_body(body):
    """Split a request body into (tables, params, baseline); ValueError on bad shapes."""
    if not isinstance(body, dict):
        raise ValueError('JSON object body required')
    params = body.get('params') or {}
    baseline = body.get('baseline')
    if not isinstance(params, dict) or (baseline is not None and not isinstance(baseline, dict)):
        raise ValueError('params and baseline must be objects')
    tables = {}
    for key in REQUIRED_TABLES + OPTIONAL_TABLES:
        rows = body.get(key)
        if rows is None:
            continue
        if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
            raise ValueError(f"'{key}' must be a list of row objects")
        tables[key] = rows
    return tables, params, baseline


def _missing_response(e, status):
    return jsonify({'error': str(e), 'missingTables': e.missing}), status


# ══════════════════════════════════════════════════════════════
#  ROUTES
# ══════════════════════════════════════════════════════════════

@app.route('/api/health')
def api_health():
    return jsonify({'status': 'ok'})


@app.route('/api/metrics', methods=['POST'])
def api_compute_metrics():
    """Compute the report from uploaded tables.
    Body: {agentStatus, agentPerformance, interactions, adherence?, timeSummary?,
           params?, baseline?}
    """
    try:
        tables, params, baseline = _parse_body(request.get_json(silent=True))
        report = compute_report(tables, params=params, baseline=baseline, logger=log)
    except MissingTableError as e:
        return _missing_response(e, 400)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    return jsonify(report)


@app.route('/api/metrics')
def api_metrics_from_files():
    """Compute the report from the exports sitting in the data directory."""
    data_dir = _data_dir()
    config_path = os.path.join(data_dir, 'config', 'parameters.xlsx')
    try:
        tables = load_tables(data_dir)
        params = load_parameters(config_path)
        baseline = load_baseline(config_path)
        report = compute_report(tables, params=params, baseline=baseline, logger=log)
    except MissingTableError as e:
        return jsonify({
            'error': str(e), 'missingTables': e.missing,
            'hint': (f"Place the Agent Status, Agent Performance and Interactions exports "
                     f"(.csv or .xlsx) in {data_dir}"),
        }), 503
    except (OSError, ValueError) as e:
        log.exception('Failed to load exports')
        return jsonify({'error': f"{type(e).__name__}: {e}"}), 500
    return jsonify(report)


@app.route('/api/metrics/<key>', methods=['POST'])
def api_single_metric(key):
    """One metric (core KPI or service level) with its trace."""
    try:
        tables, params, _ = _parse_body(request.get_json(silent=True))
        report = compute_report(tables, params=params, logger=log)
    except MissingTableError as e:
        return _missing_response(e, 400)
    except ValueError as e:
        return jsonify({'error': str(e)}), 400
    metric = report['metrics'].get(key) or report['auxiliary']['serviceLevels'].get(key)
    if metric is None:
        return jsonify({'error': f"Unknown metric '{key}'"}), 404
    return jsonify({'metric': metric, 'sourceSelection': report['sourceSelections'].get(key)})


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s %(levelname)s %(name)s: %(message)s')
    app.run(debug=False, host='0.0.0.0', port=int(os.environ.get('PORT', 5000)))
