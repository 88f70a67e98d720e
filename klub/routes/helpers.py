"""Shared request-parsing helpers for the API blueprints."""
from flask import request
from klub.app import db

# Integer columns are 32-bit on PostgreSQL.
MAX_DB_INT = 2 ** 31 - 1


def _json_body():
    """Return the JSON object body, or None when the payload is not an object."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        return None
    return data


def _clean_text(raw_value, max_len):
    if raw_value is None:
        return ''
    return str(raw_value).strip()[:max_len]


def _bounded_text(raw_value, max_len):
    """Return (stripped text, too_long) without truncating."""
    text = '' if raw_value is None else str(raw_value).strip()
    return text, len(text) > max_len


def _parse_id_list(raw_ids):
    """Parse a list of positive integer ids; None if anything is malformed."""
    if not isinstance(raw_ids, list):
        return None
    ids = []
    for raw in raw_ids:
        if isinstance(raw, bool):
            return None
        try:
            value = int(raw)
        except (TypeError, ValueError):
            return None
        if value <= 0 or value > MAX_DB_INT:
            return None
        ids.append(value)
    return ids


def _parse_count(raw_value):
    """Parse a non-negative integer counter; None if invalid."""
    if isinstance(raw_value, bool):
        return None
    if isinstance(raw_value, float):
        if not raw_value.is_integer():
            return None
        raw_value = int(raw_value)
    try:
        value = int(raw_value)
    except (TypeError, ValueError):
        return None
    if value < 0 or value > MAX_DB_INT:
        return None
    return value


def _get_row(model, row_id):
    """``db.session.get`` that treats ids outside the column range as missing."""
    if row_id is None or row_id <= 0 or row_id > MAX_DB_INT:
        return None
    return db.session.get(model, row_id)


def _page_args(default_limit=100, max_limit=100):
    limit = request.args.get('limit', type=int) or default_limit
    limit = max(1, min(max_limit, limit))
    skip = max(0, min(MAX_DB_INT, request.args.get('skip', type=int) or 0))
    return limit, skip
