"""
Call Center KPI Engine - Data Loader
Reads the platform exports (.csv or .xlsx) into row mappings and loads
consultant parameters / baseline values from config/parameters.xlsx.
All cell values come back as text; typing happens in engines.records.
"""
import os, csv, logging
from datetime import timedelta
import openpyxl

from engines.records import AGENT_STATUS, AGENT_PERFORMANCE, INTERACTIONS, ADHERENCE, TIME_SUMMARY
from engines.report import default_params

DATA_DIR = os.environ.get('KPI_DATA_DIR') or os.path.join(os.path.dirname(os.path.dirname(__file__)), 'data')

# ── Export file discovery: table key -> filename fragment ──
# Mirrors the upload screen, e.g. 'Training Agent Performance Summary.csv',
# 'HistoricalAdherence 7_24.csv', 'CalculatedTimeSummaryByWeek-....csv'.
TABLE_FILE_HINTS = {
    AGENT_STATUS: 'status',
    AGENT_PERFORMANCE: 'performance',
    INTERACTIONS: 'interactions',
    ADHERENCE: 'adherence',
    TIME_SUMMARY: 'timesummary',
}
OPTIONAL_FILES = (ADHERENCE, TIME_SUMMARY)
SUPPORTED_EXT = ('.csv', '.xlsx')


def _cell_text(val):
    if val is None:
        return ''
    if isinstance(val, timedelta):
        # Excel duration cells; str() would render days as "1 day, 2:00:00"
        total = val.total_seconds()
        h, rem = divmod(total, 3600)
        m, s = divmod(rem, 60)
        return f"{int(h)}:{int(m):02d}:{s:06.3f}"
    if isinstance(val, float) and val.is_integer():
        return str(int(val))
    return str(val).strip()


def read_xlsx_sheet(filepath, sheet_name=None):
    wb = openpyxl.load_workbook(filepath, read_only=True, data_only=True)
    try:
        ws = wb[sheet_name] if sheet_name else wb.active
        rows = list(ws.iter_rows(values_only=True))
    finally:
        wb.close()
    if len(rows) < 2:
        return []
    headers = [str(h).strip() if h else f'col_{i}' for i, h in enumerate(rows[0])]
    return [{h: _cell_text(v) for h, v in zip(headers, row)} for row in rows[1:]
            if any(v not in (None, '') for v in row)]


def read_csv(filepath):
    with open(filepath, newline='', encoding='utf-8-sig') as fh:
        reader = csv.DictReader(fh)
        rows = []
        for row in reader:
            clean = {str(k).strip(): (v or '').strip() for k, v in row.items() if k is not None}
            if any(clean.values()):
                rows.append(clean)
        return rows


def read_table(filepath):
    ext = os.path.splitext(filepath)[1].lower()
    if ext == '.xlsx':
        return read_xlsx_sheet(filepath)
    if ext == '.csv':
        return read_csv(filepath)
    raise ValueError(f"Unsupported table format: {filepath}")


def find_table_files(data_dir=None):
    """Map table key -> first matching export file under data_dir (sorted by name)."""
    data_dir = data_dir or DATA_DIR
    if not os.path.isdir(data_dir):
        return {}
    names = sorted(n for n in os.listdir(data_dir)
                   if os.path.splitext(n)[1].lower() in SUPPORTED_EXT)
    found = {}
    for key, hint in TABLE_FILE_HINTS.items():
        for n in names:
            if hint in n.lower().replace(' ', ''):
                found[key] = os.path.join(data_dir, n)
                break
    return found


def load_tables(data_dir=None):
    """Read every export found under data_dir.

    Optional tables that are missing come back as empty lists. Required tables
    that are missing are left out so the engine reports them as a configuration
    error rather than silently computing on nothing.
    """
    files = find_table_files(data_dir)
    tables = {}
    for key in TABLE_FILE_HINTS:
        path = files.get(key)
        if path is None:
            if key in OPTIONAL_FILES:
                tables[key] = []
            continue
        tables[key] = read_table(path)
        logging.info(f"Loaded {len(tables[key]):,} rows for {key} from {os.path.basename(path)}")
    return tables


def load_parameters(path=None):
    """Load engine parameters from config/parameters.xlsx ('Parameter'/'Value').
    Unknown parameters are ignored; missing file -> defaults."""
    path = path or os.path.join(DATA_DIR, 'config', 'parameters.xlsx')
    p = default_params()
    if not os.path.exists(path):
        return p
    param_map = {
        'Acceptable Variance %': 'acceptableVariancePct',
        'Warning Variance %': 'warningVariancePct',
        'Template Marker': 'templateMarker',
        'SLA Thresholds (sec)': 'slaThresholdsSec',
        'Top Queue Pool': 'topQueuePool',
        'Top Queue Count': 'topQueueCount',
        'Excluded Queue Marker': 'excludedQueueMarker',
        'Performer Count': 'performerCount',
        'Sample Size': 'sampleSize',
    }
    int_params = ('topQueuePool', 'topQueueCount', 'performerCount', 'sampleSize')
    text_params = ('templateMarker', 'excludedQueueMarker')
    for row in read_xlsx_sheet(path):
        key = str(row.get('Parameter', '')).strip()
        val = row.get('Value')
        if key not in param_map or val in (None, ''):
            continue
        mapped = param_map[key]
        try:
            if mapped == 'slaThresholdsSec':
                val = [float(x) for x in str(val).split(',') if x.strip()]
            elif mapped in int_params:
                val = int(float(val))
            elif mapped not in text_params:
                val = float(val)
        except ValueError:
            logging.warning(f"Ignoring parameter {key}={val!r}: not a number")
            continue
        p[mapped] = val
    return p


def load_baseline(path=None):
    """Optional reference values from the 'Baseline' sheet ('Metric'/'Value')."""
    path = path or os.path.join(DATA_DIR, 'config', 'parameters.xlsx')
    if not os.path.exists(path):
        return None
    wb = openpyxl.load_workbook(path, read_only=True)
    try:
        has_sheet = 'Baseline' in wb.sheetnames
    finally:
        wb.close()
    if not has_sheet:
        return None
    baseline = {}
    for row in read_xlsx_sheet(path, 'Baseline'):
        metric = str(row.get('Metric', '')).strip()
        if not metric:
            continue
        try:
            baseline[metric] = float(row.get('Value'))
        except (TypeError, ValueError):
            continue
    return baseline or None
