from flask import Flask, request, jsonify
from flask_cors import CORS
from payroll_engine import PayrollService
from payroll_engine.store import RecordStoreError
import os
import logging

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = Flask(__name__)

# Enable CORS for all routes
CORS(app)

# Initialize the payroll service (in-memory store for local development)
service = PayrollService()

REPORT_FAILED = "could not generate report"
UPDATE_FAILED = "could not update"


def _json_body():
    return request.get_json(force=True, silent=True) or {}


def _failure(e, message):
    """Map an engine exception to a JSON error response."""
    if isinstance(e, ValueError):
        logger.error(f"Validation error: {str(e)}")
        return jsonify({"error": str(e), "status": "validation_failed"}), 400
    if isinstance(e, RecordStoreError):
        logger.error(f"Store error: {str(e)}")
        return jsonify({"error": message, "status": "failed"}), 500
    logger.error(f"Unexpected error: {str(e)}", exc_info=True)
    return jsonify({"error": message, "status": "failed"}), 500


@app.route("/api", methods=["GET"])
def api_info():
    """API information endpoint"""
    return jsonify({
        "status": "ok",
        "message": "Commission Payroll API",
        "version": "1.0",
        "endpoints": {
            "reconcile": "/reconcile/<channel> [POST]",
            "batches": "/batches [GET]",
            "batch_lines": "/batches/<id>/lines [GET]",
            "toggle_line": "/lines/<id>/toggle [POST]",
            "toggle_entry": "/lines/<id>/entries/toggle [POST]",
            "adjustments": "/adjustments [GET, POST]",
            "agent_earnings": "/agents/<id>/earnings [GET]",
            "health": "/health [GET]"
        }
    }), 200


@app.route("/health", methods=["GET"])
def health():
    """Health check for monitoring"""
    return jsonify({"status": "healthy"}), 200


@app.route("/reconcile/<channel>", methods=["POST"])
def reconcile(channel):
    """
    Reconcile a bundle of extracts into a payroll batch
    """
    try:
        input_data = _json_body()

        if not input_data:
            return jsonify({
                "error": "No input data provided",
                "status": "failed"
            }), 400

        batch_name = input_data.get("batch_name") or "(draft)"
        logger.info(f"Reconciling {channel} extracts: {batch_name}")

        result = service.reconcile_from_dict(channel, input_data)

        logger.info(f"Reconciliation finished: {len(result['lines'])} lines")
        return jsonify(result), 200

    except Exception as e:
        return _failure(e, REPORT_FAILED)


@app.route("/batches", methods=["GET"])
def list_batches():
    try:
        return jsonify(service.list_batches()), 200
    except Exception as e:
        return _failure(e, REPORT_FAILED)


@app.route("/batches/<batch_id>/lines", methods=["GET"])
def batch_lines(batch_id):
    """Batch lines with their sale entries; line flags are repaired on load"""
    try:
        return jsonify(service.load_batch(batch_id)), 200
    except Exception as e:
        return _failure(e, REPORT_FAILED)


@app.route("/batches/<batch_id>", methods=["PATCH"])
def rename_batch(batch_id):
    try:
        return jsonify(service.rename_batch(batch_id, _json_body())), 200
    except Exception as e:
        return _failure(e, UPDATE_FAILED)


@app.route("/batches/<batch_id>", methods=["DELETE"])
def delete_batch(batch_id):
    try:
        service.delete_batch(batch_id)
        return jsonify({"status": "deleted", "id": batch_id}), 200
    except Exception as e:
        return _failure(e, UPDATE_FAILED)


@app.route("/lines/<line_id>/toggle", methods=["POST"])
def toggle_line(line_id):
    """Flip a line's paid flag and cascade it to every sale entry"""
    try:
        return jsonify(service.toggle_line_from_dict(line_id, _json_body())), 200
    except Exception as e:
        return _failure(e, UPDATE_FAILED)


@app.route("/lines/<line_id>/entries/toggle", methods=["POST"])
def toggle_entry(line_id):
    """Flip one sale entry's paid flag and re-derive the line flag"""
    try:
        return jsonify(service.toggle_entry_from_dict(line_id, _json_body())), 200
    except Exception as e:
        return _failure(e, UPDATE_FAILED)


@app.route("/agents/<agent_id>/earnings", methods=["GET"])
def agent_earnings(agent_id):
    """Agent personal earnings for the current month and year"""
    try:
        return jsonify(service.agent_earnings(agent_id)), 200
    except Exception as e:
        return _failure(e, REPORT_FAILED)


@app.route("/adjustments", methods=["GET"])
def list_adjustments():
    try:
        return jsonify(service.list_adjustments(request.args.get("agent_id"))), 200
    except Exception as e:
        return _failure(e, REPORT_FAILED)


@app.route("/adjustments", methods=["POST"])
def create_adjustment():
    try:
        return jsonify(service.create_adjustment_from_dict(_json_body())), 201
    except Exception as e:
        return _failure(e, UPDATE_FAILED)


@app.route("/adjustments/<adjustment_id>/complete", methods=["POST"])
def complete_adjustment(adjustment_id):
    try:
        return jsonify(service.complete_adjustment(adjustment_id, _json_body())), 200
    except Exception as e:
        return _failure(e, UPDATE_FAILED)


@app.route("/adjustments/<adjustment_id>/reopen", methods=["POST"])
def reopen_adjustment(adjustment_id):
    try:
        return jsonify(service.reopen_adjustment(adjustment_id)), 200
    except Exception as e:
        return _failure(e, UPDATE_FAILED)


if __name__ == "__main__":
    port = int(os.environ.get("PORT", 8080))
    app.run(host="0.0.0.0", port=port, debug=False)
