"""
AWS Lambda handler for the Commission Payroll API.

This is the production entry point for AWS Lambda deployments.
For local development, use main.py (Flask app) instead.
"""

import base64
import json
import logging
import os

from payroll_engine import PayrollService
from payroll_engine.store import RecordStoreError

# Configure logging
logger = logging.getLogger()
logger.setLevel(logging.INFO)

# Environment (dev, staging, prod)
ENVIRONMENT = os.environ.get("ENVIRONMENT", "dev")

# Initialize service (reused across warm invocations)
service = PayrollService()

# CORS headers for API Gateway
CORS_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization",
    "Access-Control-Allow-Methods": "GET,POST,OPTIONS",
}


def lambda_handler(event, context):
    """
    Main Lambda entry point.

    Handles API Gateway events for:
    - GET /health
    - GET /api
    - POST /reconcile/{channel}
    - POST /lines/{id}/toggle
    - POST /lines/{id}/entries/toggle
    - OPTIONS (CORS preflight)
    """
    # Handle CORS preflight
    http_method = event.get("httpMethod") or event.get("requestContext", {}).get("http", {}).get("method", "")
    if http_method == "OPTIONS":
        return {"statusCode": 200, "headers": CORS_HEADERS, "body": ""}

    # Get path (supports both REST API and HTTP API formats)
    path = event.get("path") or event.get("rawPath", "")
    parts = [p for p in path.split("/") if p]

    # Route to appropriate handler
    if path == "/health" and http_method == "GET":
        return handle_health()
    elif path == "/api" and http_method == "GET":
        return handle_api_info()
    elif http_method == "POST" and len(parts) == 2 and parts[0] == "reconcile":
        return handle_json_post(event, lambda data: service.reconcile_from_dict(parts[1], data), "could not generate report")
    elif http_method == "POST" and len(parts) == 3 and parts[0] == "lines" and parts[2] == "toggle":
        return handle_json_post(event, lambda data: service.toggle_line_from_dict(parts[1], data), "could not update")
    elif http_method == "POST" and parts[:1] == ["lines"] and parts[2:] == ["entries", "toggle"]:
        return handle_json_post(event, lambda data: service.toggle_entry_from_dict(parts[1], data), "could not update")
    else:
        return {"statusCode": 404, "headers": CORS_HEADERS, "body": json.dumps({"error": "Not found", "path": path})}


def handle_health():
    """Health check endpoint."""
    return {
        "statusCode": 200,
        "headers": CORS_HEADERS,
        "body": json.dumps({"status": "healthy", "environment": ENVIRONMENT}),
    }


def handle_api_info():
    """API information endpoint."""
    return {
        "statusCode": 200,
        "headers": CORS_HEADERS,
        "body": json.dumps(
            {
                "status": "ok",
                "message": "Commission Payroll API",
                "version": "1.0",
                "environment": ENVIRONMENT,
                "runtime": "AWS Lambda",
                "endpoints": {
                    "reconcile": "/reconcile/{channel} [POST]",
                    "toggle_line": "/lines/{id}/toggle [POST]",
                    "toggle_entry": "/lines/{id}/entries/toggle [POST]",
                    "health": "/health [GET]",
                },
            }
        ),
    }


def parse_body(event):
    """Decode the request body; returns None when it is empty."""
    body = event.get("body", "")
    if isinstance(body, str):
        if not body:
            return None
        # Handle base64 encoded body (API Gateway)
        if event.get("isBase64Encoded"):
            body = base64.b64decode(body).decode("utf-8")
        return json.loads(body)
    return body


def handle_json_post(event, action, failure_message):
    """Run `action` on the parsed body and map engine errors to status codes."""
    try:
        input_data = parse_body(event)
        if not input_data:
            return {
                "statusCode": 400,
                "headers": CORS_HEADERS,
                "body": json.dumps({"error": "No input data provided", "status": "failed"}),
            }

        result = action(input_data)

        return {"statusCode": 200, "headers": CORS_HEADERS, "body": json.dumps(result)}

    except json.JSONDecodeError as e:
        logger.error(f"JSON parse error: {str(e)}")
        return {
            "statusCode": 400,
            "headers": CORS_HEADERS,
            "body": json.dumps({"error": f"Invalid JSON: {str(e)}", "status": "failed"}),
        }

    except (ValueError, KeyError, TypeError) as e:
        # Validation errors from engine (unknown channel, missing extracts, bad dimension, etc.)
        logger.error(f"Validation error: {str(e)}")
        return {
            "statusCode": 400,
            "headers": CORS_HEADERS,
            "body": json.dumps({"error": f"Validation error: {str(e)}", "status": "validation_failed"}),
        }

    except RecordStoreError as e:
        logger.error(f"Store error: {str(e)}")
        return {
            "statusCode": 500,
            "headers": CORS_HEADERS,
            "body": json.dumps({"error": failure_message, "status": "failed"}),
        }

    except Exception as e:
        # Unexpected errors - log details but return generic message
        logger.error(f"Unexpected processing error: {str(e)}", exc_info=True)
        return {
            "statusCode": 500,
            "headers": CORS_HEADERS,
            "body": json.dumps({"error": failure_message, "status": "failed"}),
        }
