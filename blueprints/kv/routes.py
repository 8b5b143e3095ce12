"""
Key-value gateway routes.
Stateless proxy in front of the hosted store: get, set, incr and the
compound merge (read, shallow-merge, write, bump revision).

Every internal failure answers HTTP 200 with {"ok": false, "error": ...};
disallowed verbs answer 405.
"""

from flask import Blueprint, current_app, request
from flask_login import current_user

from database import get_kv, KVError
from models.shared_state import ADMIN_KEYS, MergeRejected, merge_state, redact
from utils.api_response import kv_ok, kv_error
from utils.messages import MESSAGES

kv_bp = Blueprint('kv', __name__)


def _allowed_keys() -> set:
    return {current_app.config['STATE_KEY'], current_app.config['REV_KEY']}


def _is_admin() -> bool:
    return bool(getattr(current_user, 'is_authenticated', False))


@kv_bp.route('/kv-get', methods=['GET'])
def kv_get():
    """
    Read a key.

    Query params:
        key: Store key

    Response JSON:
        {"ok": true, "result": <value or null>}
    """
    key = request.args.get('key')
    if not key:
        return kv_error('key is required')
    if key not in _allowed_keys():
        return kv_error(f'key not allowed: {key}')

    try:
        result = get_kv().get(key)
    except KVError as e:
        current_app.logger.warning(f'kv-get {key} failed: {e}')
        return kv_error(str(e))

    if key == current_app.config['STATE_KEY'] and isinstance(result, dict) and not _is_admin():
        result = redact(result)
    return kv_ok(result=result)


@kv_bp.route('/kv-set', methods=['POST'])
def kv_set():
    """
    Overwrite a key (admin only).

    Request JSON:
        {"key": str, "value": any}

    Response JSON:
        {"ok": true, "result": <value>}
    """
    if not _is_admin():
        return kv_error(MESSAGES['unauthorized'], 401)

    body = request.get_json(silent=True)
    if not isinstance(body, dict) or not body.get('key'):
        return kv_error('key is required')
    key = body['key']
    if key not in _allowed_keys():
        return kv_error(f'key not allowed: {key}')

    try:
        result = get_kv().set(key, body.get('value'))
    except KVError as e:
        current_app.logger.warning(f'kv-set {key} failed: {e}')
        return kv_error(str(e))

    current_app.logger.info(f'kv-set {key} by admin')
    return kv_ok(result=result)


@kv_bp.route('/kv-incr', methods=['POST'])
def kv_incr():
    """
    Atomically increment a counter.

    Request JSON:
        {"key": str}

    Response JSON:
        {"ok": true, "result": int}
    """
    body = request.get_json(silent=True)
    if not isinstance(body, dict) or not body.get('key'):
        return kv_error('key is required')
    key = body['key']
    if key not in _allowed_keys():
        return kv_error(f'key not allowed: {key}')

    try:
        result = get_kv().incr(key)
    except KVError as e:
        current_app.logger.warning(f'kv-incr {key} failed: {e}')
        return kv_error(str(e))

    return kv_ok(result=result)


@kv_bp.route('/kv-merge', methods=['POST'])
def kv_merge():
    """
    Shallow-merge a patch into the shared document and bump the revision.

    Patches touching admin-only keys need an admin session once the
    document exists. Without one, tents may only change the way a hold
    or its expiry changes them.

    Request JSON:
        {"stateKey": str, "patch": object, "revKey": str}

    Response JSON:
        {"ok": true, "state": object, "rev": int}
    """
    body = request.get_json(silent=True)
    if not isinstance(body, dict):
        return kv_error(MESSAGES['invalid_request'])

    state_key = body.get('stateKey') or current_app.config['STATE_KEY']
    rev_key = body.get('revKey') or current_app.config['REV_KEY']
    patch = body.get('patch') or {}
    if not isinstance(patch, dict):
        return kv_error('patch must be an object')
    if state_key != current_app.config['STATE_KEY'] or rev_key != current_app.config['REV_KEY']:
        return kv_error('key not allowed')

    admin = _is_admin()
    try:
        state, rev = merge_state(
            patch, state_key, rev_key,
            protected_keys=frozenset() if admin else ADMIN_KEYS,
            public=not admin
        )
    except MergeRejected as e:
        current_app.logger.warning(f'kv-merge rejected: {e}')
        return kv_error(MESSAGES['unauthorized'], 401)
    except KVError as e:
        current_app.logger.warning(f'kv-merge failed: {e}')
        return kv_error(str(e))

    return kv_ok(state=state if admin else redact(state), rev=rev)
