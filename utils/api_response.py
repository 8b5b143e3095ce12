"""
Standardized API response helpers.

Application endpoints (reservations, admin, checkout):

    Success:  {"success": true, "data": {...}, "message": "..."}
    Error:    {"success": false, "error": "Spanish error message"}

Key-value gateway endpoints keep the envelope their clients expect:

    Success:  {"ok": true, "result": ...}   (merge: {"ok": true, "state": ..., "rev": n})
    Error:    {"ok": false, "error": "..."}

Usage:
    from utils.api_response import api_success, api_error, kv_ok, kv_error

    return api_success(data={'id': 1}, message='Creado exitosamente')
    return api_error('Datos requeridos', status=400)
    return kv_ok(result=value)
"""

from flask import jsonify
from typing import Any


def api_success(
    data: dict | None = None,
    message: str | None = None,
    warning: str | None = None,
    status: int = 200,
    **extra_fields: Any
) -> tuple:
    """
    Build a standardized success JSON response.

    Args:
        data: Optional dict to include as 'data' key.
        message: Optional success message (Spanish).
        warning: Optional warning message (Spanish).
        status: HTTP status code (default 200).
        **extra_fields: Additional top-level fields to include in the response
            (e.g., rev).

    Returns:
        Tuple of (Response, status_code)
    """
    response = {'success': True}

    if data is not None:
        response['data'] = data

    if message:
        response['message'] = message

    if warning:
        response['warning'] = warning

    if extra_fields:
        response.update(extra_fields)

    return jsonify(response), status


def api_error(error: str, status: int = 400, **extra_fields: Any) -> tuple:
    """
    Build a standardized error JSON response.

    Args:
        error: Error message (Spanish).
        status: HTTP status code (default 400).
        **extra_fields: Additional top-level fields (e.g., keys).

    Returns:
        Tuple of (Response, status_code)
    """
    response = {'success': False, 'error': error}

    if extra_fields:
        response.update(extra_fields)

    return jsonify(response), status


def kv_ok(status: int = 200, **fields: Any) -> tuple:
    """
    Build a key-value gateway success response.

    Args:
        status: HTTP status code (default 200).
        **fields: Top-level fields (result, or state and rev).

    Returns:
        Tuple of (Response, status_code)
    """
    response = {'ok': True}
    response.update(fields)
    return jsonify(response), status


def kv_error(error: str, status: int = 200) -> tuple:
    """
    Build a key-value gateway error response.

    Internal failures are reported with HTTP 200 and ok=false; the
    underlying store's status code is never propagated.

    Args:
        error: Error description.
        status: HTTP status code (default 200).

    Returns:
        Tuple of (Response, status_code)
    """
    return jsonify({'ok': False, 'error': error}), status
