from __future__ import annotations
from flask import Blueprint, request, abort, current_app
from sqlalchemy import or_
from portal import get_db
from portal.decorators.auth import require_actor
from portal.models.comment import EventComment
from portal.models.event import Event
from portal.services.audit import add_audit_comment, add_note
from portal.services.policy import (
    assert_branch_access,
    current_actor,
    filter_query_by_actor_scope,
    pending_approvals_query,
)
from portal.utils.conditional import check_if_match, make_event_response
from portal.utils.listing import (
    apply_filters,
    apply_multi_sort,
    apply_pagination,
    canonicalize_timestamp,
    handle_conditional,
    make_cached_list_response,
)
from portal.utils.validation import (
    parse_bool,
    parse_datetime,
    parse_int,
    parse_number,
    parse_status,
    parse_text,
    reject_fields,
    require_fields,
)
from portal.workflow.engine import apply_transition
from portal.workflow.permissions import delete_decision, edit_decision, metrics_decision, permission_summary
from portal.workflow.states import INITIAL_STATUS, coerce_status

events_bp = Blueprint('events', __name__)

ACTUAL_FIELDS = ('actual_budget', 'actual_enquiries', 'actual_orders')
REQUIRED_ON_CREATE = ('title', 'location', 'start_date', 'end_date', 'branch_id')

SORT_FIELDS = {
    'title': Event.title,
    'start_date': Event.start_date,
    'end_date': Event.end_date,
    'budget': Event.budget,
    'status': Event.status,
    'created_at': Event.created_at,
    'updated_at': Event.updated_at,
    'id': Event.id,
}


def _search(q, term):
    like = f'%{term}%'
    return q.filter(or_(Event.title.ilike(like), Event.description.ilike(like), Event.location.ilike(like)))


EVENT_FILTERS = {
    'status': {'coerce': lambda v: coerce_status(v).value, 'op': lambda q, v: q.filter(Event.status == v)},
    'branch_id': {'coerce': int, 'op': lambda q, v: q.filter(Event.branch_id == v)},
    'creator_id': {'coerce': int, 'op': lambda q, v: q.filter(Event.creator_id == v)},
    'search': {'coerce': lambda v: v.strip(), 'validate': bool, 'op': _search},
    'min_budget': {'coerce': float, 'op': lambda q, v: q.filter(Event.budget >= v)},
    'max_budget': {'coerce': float, 'op': lambda q, v: q.filter(Event.budget <= v)},
}


def _iso(dt):
    return canonicalize_timestamp(dt).isoformat().replace('+00:00', 'Z') if dt else None


def _event_json(e: Event):
    return {
        'id': e.id,
        'title': e.title,
        'description': e.description,
        'location': e.location,
        'event_type': e.event_type,
        'is_planned': e.is_planned,
        'start_date': _iso(e.start_date),
        'end_date': _iso(e.end_date),
        'status': e.status,
        'creator_id': e.creator_id,
        'branch_id': e.branch_id,
        'budget': e.budget,
        'planned_budget': e.planned_budget,
        'planned_enquiries': e.planned_enquiries,
        'planned_orders': e.planned_orders,
        'actual_budget': e.actual_budget,
        'actual_enquiries': e.actual_enquiries,
        'actual_orders': e.actual_orders,
        'version': e.version,
        'created_at': _iso(e.created_at),
        'updated_at': _iso(e.updated_at),
    }


def _comment_json(c: EventComment):
    return {
        'id': c.id,
        'event_id': c.event_id,
        'author_id': c.author_id,
        'text': c.text,
        'kind': c.kind,
        'status_from': c.status_from,
        'status_to': c.status_to,
        'created_at': _iso(c.created_at),
    }


def _load_event(event_id: int) -> Event:
    e = get_db().get(Event, event_id)
    if not e:
        abort(404)
    assert_branch_access(current_actor(), e.branch_id, e.creator_id)
    return e


def _json_body():
    data = request.get_json(silent=True)
    if data is None:
        data = {}
    if not isinstance(data, dict):
        abort(400, description='JSON object body required')
    return data


def _apply_details(e: Event, data):
    """Copy structural fields present in ``data`` onto ``e``."""
    if 'title' in data:
        e.title = parse_text(data['title'], 'title', 200, nullable=False)
    if 'description' in data:
        e.description = parse_text(data['description'], 'description', 5000)
    if 'location' in data:
        e.location = parse_text(data['location'], 'location', 200, nullable=False)
    if 'event_type' in data:
        e.event_type = parse_text(data['event_type'], 'event_type', 64)
    if 'is_planned' in data:
        e.is_planned = parse_bool(data['is_planned'], 'is_planned')
    if 'start_date' in data:
        e.start_date = parse_datetime(data['start_date'], 'start_date')
    if 'end_date' in data:
        e.end_date = parse_datetime(data['end_date'], 'end_date')
    if 'budget' in data:
        e.budget = parse_number(data['budget'], 'budget', nullable=False)
    if 'planned_budget' in data:
        e.planned_budget = parse_number(data['planned_budget'], 'planned_budget')
    if 'planned_enquiries' in data:
        e.planned_enquiries = parse_int(data['planned_enquiries'], 'planned_enquiries')
    if 'planned_orders' in data:
        e.planned_orders = parse_int(data['planned_orders'], 'planned_orders')
    start, end = canonicalize_timestamp(e.start_date), canonicalize_timestamp(e.end_date)
    if end < start:
        abort(400, description='end_date must not be before start_date')


@events_bp.route('', methods=['GET', 'HEAD'])
@require_actor
def list_events():
    session = get_db()
    actor = current_actor()
    q = filter_query_by_actor_scope(session.query(Event), actor)
    q = apply_filters(q, EVENT_FILTERS, request.args)
    q = apply_multi_sort(q, request.args.get('sort'), SORT_FIELDS, Event.id)
    paged_q, total, limit, offset = apply_pagination(q)
    rows = paged_q.all()
    rows_json = [_event_json(e) for e in rows]
    latest_ts = max((e.updated_at for e in rows if e.updated_at), default=None)
    resp, etag = make_cached_list_response(rows_json, total, limit, offset, latest_ts)
    cond = handle_conditional(etag, latest_ts)
    if cond:
        cond.set_data(b'')
        return cond
    if request.method == 'HEAD':
        resp.set_data(b'')
    return resp


@events_bp.get('/pending-approvals')
@require_actor
def pending_approvals():
    actor = current_actor()
    q = pending_approvals_query(actor)
    if q is None:
        return {'data': []}
    rows = get_db().execute(q.order_by(Event.start_date, Event.id)).scalars().all()
    return {'data': [_event_json(e) for e in rows]}


@events_bp.post('')
@require_actor
def create_event():
    session = get_db()
    actor = current_actor()
    data = _json_body()
    reject_fields(data, ACTUAL_FIELDS, 'can only be recorded after approval')
    if 'status' in data and data['status'] != INITIAL_STATUS.value:
        abort(400, description='Events are created in draft status')
    require_fields(data, REQUIRED_ON_CREATE)
    branch_id = parse_int(data['branch_id'], 'branch_id', minimum=1, nullable=False)
    assert_branch_access(actor, branch_id)
    e = Event(
        creator_id=actor.id,
        branch_id=branch_id,
        status=INITIAL_STATUS.value,
        is_planned=True,
        budget=0,
    )
    _apply_details(e, data)
    session.add(e)
    session.commit()
    current_app.logger.info('Event %s created by user %s (%s) in branch %s', e.id, actor.id, actor.role.value, branch_id)
    return make_event_response(_event_json(e), e, 201)


@events_bp.route('/<int:event_id>', methods=['GET', 'HEAD'])
@require_actor
def get_event(event_id: int):
    e = _load_event(event_id)
    return make_event_response(_event_json(e), e)


@events_bp.get('/<int:event_id>/permissions')
@require_actor
def get_permissions(event_id: int):
    e = _load_event(event_id)
    summary = permission_summary(e.to_record(), current_actor())
    body = summary.to_dict()
    body.update({'event_id': e.id, 'status': e.status})
    return body


@events_bp.put('/<int:event_id>')
@require_actor
def update_event(event_id: int):
    session = get_db()
    actor = current_actor()
    e = _load_event(event_id)
    check_if_match(e)
    data = _json_body()
    if 'status' in data:
        abort(400, description='status can only change through PATCH /status')
    reject_fields(data, ACTUAL_FIELDS, 'can only be written through PUT /metrics')
    if 'branch_id' in data and parse_int(data['branch_id'], 'branch_id', nullable=False) != e.branch_id:
        abort(400, description='branch_id is immutable')
    if 'creator_id' in data and parse_int(data['creator_id'], 'creator_id', nullable=False) != e.creator_id:
        abort(400, description='creator_id is immutable')
    decision = edit_decision(e.to_record(), actor)
    if not decision.allowed:
        abort(403, description=decision.message)
    _apply_details(e, data)
    session.commit()
    current_app.logger.info('Event %s details updated by user %s', e.id, actor.id)
    return make_event_response(_event_json(e), e)


@events_bp.put('/<int:event_id>/metrics')
@require_actor
def update_metrics(event_id: int):
    session = get_db()
    actor = current_actor()
    e = _load_event(event_id)
    check_if_match(e)
    data = _json_body()
    unexpected = sorted(set(data) - set(ACTUAL_FIELDS))
    if unexpected:
        abort(400, description=f"{', '.join(unexpected)} not accepted; only {', '.join(ACTUAL_FIELDS)}")
    if not data:
        abort(400, description=f"one of {', '.join(ACTUAL_FIELDS)} required")
    decision = metrics_decision(e.to_record(), actor)
    if not decision.allowed:
        abort(403, description=decision.message)
    if 'actual_budget' in data:
        e.actual_budget = parse_number(data['actual_budget'], 'actual_budget')
    if 'actual_enquiries' in data:
        e.actual_enquiries = parse_int(data['actual_enquiries'], 'actual_enquiries')
    if 'actual_orders' in data:
        e.actual_orders = parse_int(data['actual_orders'], 'actual_orders')
    session.commit()
    current_app.logger.info('Event %s actuals recorded by user %s', e.id, actor.id)
    return make_event_response(_event_json(e), e)


@events_bp.patch('/<int:event_id>/status')
@require_actor
def change_status(event_id: int):
    session = get_db()
    actor = current_actor()
    e = _load_event(event_id)
    check_if_match(e)
    data = _json_body()
    target = parse_status(data.get('status'))
    comment = data.get('comment')
    if comment is not None and not isinstance(comment, str):
        abort(400, description='comment must be a string')
    previous = e.status
    result = apply_transition(e.to_record(), actor, target, comment)
    e.status = result.event.status.value
    add_audit_comment(result.comment)
    session.commit()
    current_app.logger.info(
        'Event %s status %s -> %s by user %s (%s)', e.id, previous, e.status, actor.id, actor.role.value,
    )
    body = {
        'id': e.id,
        'status': e.status,
        'previous_status': previous,
        'comment': result.comment.to_dict(),
    }
    return make_event_response(body, e)


@events_bp.delete('/<int:event_id>')
@require_actor
def delete_event(event_id: int):
    session = get_db()
    actor = current_actor()
    e = _load_event(event_id)
    check_if_match(e)
    decision = delete_decision(e.to_record(), actor)
    if not decision.allowed:
        abort(403, description=decision.message)
    session.delete(e)
    session.commit()
    current_app.logger.info('Event %s deleted by user %s', event_id, actor.id)
    return '', 204


@events_bp.get('/<int:event_id>/comments')
@require_actor
def list_comments(event_id: int):
    e = _load_event(event_id)
    rows = get_db().query(EventComment).filter(EventComment.event_id == e.id).order_by(EventComment.id.asc()).all()
    return {'data': [_comment_json(c) for c in rows]}


@events_bp.post('/<int:event_id>/comments')
@require_actor
def add_comment(event_id: int):
    session = get_db()
    actor = current_actor()
    e = _load_event(event_id)
    data = _json_body()
    text = parse_text(data.get('text'), 'text', 2000, nullable=False)
    c = add_note(e.id, actor.id, text)
    session.commit()
    return _comment_json(c), 201
