"""Single-resource validators: ETag from (id, version), If-None-Match, If-Match.

The version column is bumped on every write, so the tag changes whenever the row
does; If-Match lets a client make its write conditional on what it last read.
"""
from __future__ import annotations
from flask import request, abort, make_response, jsonify, current_app
from portal.utils.listing import compute_etag, handle_conditional, set_last_modified


def event_etag(event) -> str:
    return compute_etag([event.id], 1, 1, 0, f'v{event.version}')


def _tags(header_val: str):
    return {tag.strip().removeprefix('W/').strip('"') for tag in header_val.split(',') if tag.strip()}


def check_if_match(event):
    """Abort 412 on a stale If-Match; 428 when required but missing."""
    raw = request.headers.get('If-Match')
    if not raw:
        if current_app.config.get('EVENTS_REQUIRE_IF_MATCH'):
            abort(428, description='If-Match header required')
        return
    if raw.strip() == '*':
        return
    current = event_etag(event)
    if current not in _tags(raw):
        current_app.logger.warning('If-Match mismatch on event %s (version %s)', event.id, event.version)
        abort(412, description='Event has changed since it was read')


def make_event_response(body, event, status: int = 200):
    """JSON response carrying the event's ETag and Last-Modified headers.

    GET/HEAD honour If-None-Match and If-Modified-Since.
    """
    etag = event_etag(event)
    latest_ts = event.updated_at
    if request.method in ('GET', 'HEAD'):
        cond = handle_conditional(etag, latest_ts)
        if cond:
            cond.set_data(b'')
            return cond
    resp = make_response(jsonify(body), status)
    resp.headers['ETag'] = etag
    set_last_modified(resp, latest_ts)
    if request.method == 'HEAD':
        resp.set_data(b'')
    return resp
