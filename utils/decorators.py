"""
Route decorators for request validation.
"""

from functools import wraps
from flask import request

from utils.api_response import api_error
from utils.messages import MESSAGES


def json_body_required(func):
    """
    Decorator rejecting requests whose body is not a JSON object.

    The parsed body is passed to the view as the `data` keyword argument.

    Usage:
        @bp.route('/tents/<int:tent_id>/price', methods=['POST'])
        @login_required
        @json_body_required
        def set_price(tent_id, data):
            ...
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return api_error(MESSAGES['invalid_request'], 400)
        return func(*args, data=data, **kwargs)
    return wrapper
