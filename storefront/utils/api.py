# storefront/utils/api.py
from flask import jsonify


def api_ok(message, data=None):
    return {
        "status": True,
        "message": message,
        "data": {**(data or {})},
    }


def api_error(message, data=None):
    return {
        "status": False,
        "message": message,
        "data": {**(data or {})},
    }


# ---- response helper ---------------------------------------------------------
def ok(msg, data=None, status=200):
    r = jsonify(api_ok(msg, data)); r.status_code = status; return r
