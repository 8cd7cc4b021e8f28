# Overview: Request decorators for API routes.

from functools import wraps
from flask import request, jsonify

from .time_utils import parse_month_key
from .validation import ValidationError


def require_month(f):
    """
    Parse the ?month=YYYY-MM query parameter and pass it as `month`.

    Returns 400 if the parameter is missing or malformed.
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            kwargs["month"] = parse_month_key(request.args.get("month"))
        except ValidationError as e:
            return jsonify({"error": str(e)}), 400
        return f(*args, **kwargs)

    return decorated_function
