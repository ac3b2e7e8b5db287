#!/usr/bin/env python3
"""
Flask Web Application for Flow Analyzer
Provides REST API endpoints for ingesting contract execution traces and
querying flows, call trees, function hotspots and global analytics.
"""

from flask import Flask, request, jsonify, g
from werkzeug.exceptions import HTTPException
from werkzeug.utils import secure_filename
import logging
import os
import tempfile
import time

import ijson

from flow_analyzer import FlowAnalyzer, AggregationUnavailable, InvalidIngestRequest
from flow_analyzer.processors import IngestFileProcessor, ParallelIngestor, summarize_record
from flow_analyzer.storage import FileRecordStore
from flow_analyzer.web import prepare_analytics, prepare_error, prepare_response

logger = logging.getLogger('flow_analyzer.api')

app = Flask(__name__)
app.config['MAX_CONTENT_LENGTH'] = 50 * 1024 * 1024
app.config['UPLOAD_FOLDER'] = tempfile.gettempdir()
app.config['INGEST_WORKERS'] = 4
app.config['MAX_HOTSPOT_LIMIT'] = 50

ALLOWED_EXTENSIONS = {'json'}


def create_analyzer():
    """Build the analyzer, persisting flows to disk when FLOW_ANALYZER_STORAGE_DIR is set."""
    storage_dir = os.environ.get('FLOW_ANALYZER_STORAGE_DIR')
    if storage_dir:
        return FlowAnalyzer(record_store=FileRecordStore(storage_dir))
    return FlowAnalyzer()


analyzer = create_analyzer()


def allowed_file(filename):
    return '.' in filename and filename.rsplit('.', 1)[1].lower() in ALLOWED_EXTENSIONS


def source_for(has_data):
    return 'mock' if has_data else 'hardhat'


def not_found(tx_hash):
    return jsonify(prepare_error('Not Found', f'Transaction {tx_hash} not found')), 404


# ============================================
# Middleware
# ============================================

@app.before_request
def start_timer():
    g.request_started = time.time()


@app.after_request
def add_cors_and_log(response):
    response.headers['Access-Control-Allow-Origin'] = '*'
    response.headers['Access-Control-Allow-Methods'] = 'GET, POST, OPTIONS'
    response.headers['Access-Control-Allow-Headers'] = 'Content-Type, Authorization'

    started = getattr(g, 'request_started', None)
    if started is not None:
        duration_ms = (time.time() - started) * 1000
        logger.info("%s %s %d - %.0fms", request.method, request.path, response.status_code, duration_ms)
    return response


@app.errorhandler(InvalidIngestRequest)
def handle_invalid_request(e):
    return jsonify(prepare_error('Bad Request', str(e))), 400


@app.errorhandler(AggregationUnavailable)
def handle_aggregation_unavailable(e):
    logger.error("Function statistics unavailable: %s", e)
    return jsonify(prepare_error('Aggregation Unavailable', str(e))), 503


@app.errorhandler(404)
def handle_not_found(e):
    return jsonify(prepare_error('Not Found', f'Endpoint {request.method} {request.path} not found')), 404


@app.errorhandler(Exception)
def handle_unexpected(e):
    if isinstance(e, HTTPException):
        return jsonify(prepare_error(e.name, e.description)), e.code
    logger.exception("Unhandled API error")
    return jsonify(prepare_error('Internal Server Error', str(e) or 'An unexpected error occurred')), 500


# ============================================
# Health and plugin handshake
# ============================================

@app.route('/health')
def health():
    return jsonify({'status': 'ok'})


@app.route('/hello', methods=['POST'])
def hello():
    """
    Hardhat plugin handshake.
    Accepts: JSON with optional tool, version, chain, environment
    Returns: {'projectId': ...}
    """
    body = request.get_json(silent=True) or {}
    project_id = analyzer.config.default_project_id
    logger.info("Project registered: %s (tool=%s, version=%s, chain=%s)",
                project_id, body.get('tool'), body.get('version'), body.get('chain'))
    return jsonify({'projectId': project_id})


@app.route('/api/context')
def context():
    """Returns the current analysis context."""
    count = analyzer.record_store.count()
    has_data = count > 0
    data = {
        'network': 'mock' if has_data else 'hardhat',
        'lastUpdated': int(time.time() * 1000),
        'transactionCount': count,
        'analysisStatus': 'mock' if has_data else 'partial',
    }
    return jsonify(prepare_response(data, source_for(has_data)))


# ============================================
# Executions
# ============================================

@app.route('/api/executions')
def list_executions():
    """
    Returns the most recent flows as summaries.
    Query params:
      - 'limit': max number of flows (default 50, capped by max_query_limit)
      - 'view': 'nested' to group summaries by max depth for display
    """
    limit = request.args.get('limit', type=int) or 50

    if request.args.get('view') == 'nested':
        clusters = analyzer.list_execution_clusters(limit)
        data = [c.to_dict() for c in clusters]
    else:
        data = [s.to_dict() for s in analyzer.list_executions(limit)]

    return jsonify(prepare_response(
        data,
        source_for(bool(data)),
        count=len(data),
        message=None if data else 'No executions found',
    ))


@app.route('/api/executions/<tx_hash>')
def get_execution(tx_hash):
    """Returns a flow summary with timestamp and block number."""
    record = analyzer.get_execution(tx_hash)
    if record is None:
        return not_found(tx_hash)

    summary = summarize_record(record).to_dict()
    summary['timestamp'] = record.timestamp
    if record.block_number is not None:
        summary['blockNumber'] = record.block_number
    return jsonify(prepare_response(summary, 'mock'))


@app.route('/api/executions/<tx_hash>/flow')
def get_execution_flow(tx_hash):
    """Returns the full flow with all steps."""
    record = analyzer.get_execution(tx_hash)
    if record is None:
        return not_found(tx_hash)
    return jsonify(prepare_response(record.to_dict(), 'mock'))


@app.route('/api/executions/<tx_hash>/tree')
def get_execution_tree(tx_hash):
    """Returns the call tree rebuilt from the flow's step order and depths."""
    tree = analyzer.get_step_tree(tx_hash)
    if tree is None:
        return not_found(tx_hash)
    data = [node.to_dict() for node in tree]
    return jsonify(prepare_response(data, 'mock', count=len(data)))


# ============================================
# Hotspots and analytics
# ============================================

@app.route('/api/hotspots')
def hotspots():
    """Returns function statistics ranked by revert rate."""
    limit = min(request.args.get('limit', type=int) or 10, app.config['MAX_HOTSPOT_LIMIT'])
    stats = analyzer.get_hotspots(limit)
    data = [s.to_dict() for s in stats]
    return jsonify(prepare_response(
        data,
        source_for(bool(data)),
        count=len(data),
        message=None if data else 'No function statistics available',
    ))


@app.route('/api/analytics')
def analytics():
    """Returns global metrics and coverage."""
    metrics = analyzer.compute_analytics()
    coverage = analyzer.compute_coverage()
    return jsonify(prepare_response(
        prepare_analytics(metrics, coverage),
        source_for(metrics.total_transactions > 0),
    ))


# ============================================
# Internal ingestion
# ============================================

@app.route('/api/internal/ingest/hardhat', methods=['POST'])
def ingest_hardhat():
    """
    Accepts a Hardhat trace or plugin payload.
    Returns: 201 with {txHash, stepCount}
    """
    record = analyzer.ingest_payload(request.get_json(silent=True))
    return jsonify(prepare_response(
        {'txHash': record.tx_hash, 'stepCount': len(record.steps)},
        'hardhat',
        message='Transaction ingested successfully',
    )), 201


@app.route('/api/internal/ingest/flow', methods=['POST'])
def ingest_flow():
    """
    Accepts a pre-built flow with a steps array. Status and failedAt are
    re-derived from the steps.
    Returns: 201 with {txHash, stepCount, maxDepth}
    """
    record = analyzer.ingest_flow_payload(request.get_json(silent=True))
    return jsonify(prepare_response(
        {'txHash': record.tx_hash, 'stepCount': len(record.steps), 'maxDepth': record.max_depth},
        'hardhat',
        message='Flow ingested successfully',
    )), 201


@app.route('/api/internal/ingest/file', methods=['POST'])
def ingest_file():
    """
    Accepts: multipart/form-data with a 'file' field holding a JSON array of
    ingest payloads.
    Returns: 201 with {ingested, rejected: [{index, message}]}
    """
    if 'file' not in request.files:
        return jsonify(prepare_error('Bad Request', 'No file provided')), 400

    file = request.files['file']

    if not file.filename:
        return jsonify(prepare_error('Bad Request', 'No file selected')), 400

    if not allowed_file(file.filename):
        return jsonify(prepare_error('Bad Request', 'Invalid file type. Only JSON files are allowed.')), 400

    # Unique name per upload; the client's filename only serves as a prefix
    prefix = secure_filename(file.filename).rsplit('.', 1)[0] or 'upload'
    with tempfile.NamedTemporaryFile(
        dir=app.config['UPLOAD_FOLDER'], prefix=f'{prefix}-', suffix='.json', delete=False
    ) as tmp:
        file.save(tmp)
        filepath = tmp.name

    try:
        payloads = list(IngestFileProcessor.iter_requests(filepath))
    except ijson.JSONError as e:
        return jsonify(prepare_error('Bad Request', f'Invalid JSON: {e}')), 400
    finally:
        os.remove(filepath)

    ingestor = ParallelIngestor(analyzer, num_workers=app.config['INGEST_WORKERS'])
    ingested, rejected = ingestor.ingest_all(payloads)

    return jsonify(prepare_response(
        {
            'ingested': ingested,
            'rejected': [{'index': index, 'message': message} for index, message in rejected],
        },
        'hardhat',
        message=f'Ingested {ingested} of {len(payloads)} transactions',
    )), 201


@app.route('/api/internal/recompute', methods=['POST'])
def recompute():
    """Rebuilds function statistics from every stored flow."""
    replayed = analyzer.recompute_all()
    return jsonify(prepare_response(
        {'recomputed': replayed},
        'hardhat',
        message=f'Recomputed stats from {replayed} transactions',
    ))


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    app.run(debug=True, host='0.0.0.0', port=int(os.environ.get('PORT', 3001)))
