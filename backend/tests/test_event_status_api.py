from tests.test_lifecycle_helpers import (
    ADMIN, GM, MARKETING_HEAD, MARKETING_MANAGER, OTHER_GM, SALES,
    assert_transition, create_event_and_assert, current_etag, headers_for, patch_status, walk_to_approved,
)
from tests.test_utils_seed import comments_for, load_event, seed_event


def test_full_lifecycle_with_audit_trail(client, app_instance):
    sales = headers_for(app_instance, SALES)
    event_id = create_event_and_assert(client, sales)['id']
    resp = assert_transition(client, event_id, sales, 'pending_gm', comment='Please review')
    body = resp.get_json()
    assert body['previous_status'] == 'draft'
    assert body['comment']['status_from'] == 'draft'
    assert body['comment']['status_to'] == 'pending_gm'
    assert body['comment']['text'] == 'Please review'
    assert resp.headers['ETag']
    assert_transition(client, event_id, headers_for(app_instance, GM), 'pending_marketing', comment='Budget ok')
    assert_transition(client, event_id, headers_for(app_instance, MARKETING_HEAD), 'approved')
    metrics = client.put(
        f'/api/events/{event_id}/metrics',
        json={'actual_budget': 11000, 'actual_enquiries': 0, 'actual_orders': 0},
        headers=headers_for(app_instance, MARKETING_MANAGER),
    )
    assert metrics.status_code == 200, metrics.get_json()
    assert_transition(client, event_id, sales, 'completed')
    rows = comments_for(app_instance, event_id)
    assert [(c.status_from, c.status_to) for c in rows] == [
        ('draft', 'pending_gm'),
        ('pending_gm', 'pending_marketing'),
        ('pending_marketing', 'approved'),
        ('approved', 'completed'),
    ]
    assert [c.kind for c in rows] == ['general', 'approval', 'approval', 'general']
    assert rows[2].text is None
    perms = client.get(f'/api/events/{event_id}/permissions', headers=headers_for(app_instance, ADMIN)).get_json()
    assert perms['actions'] == []
    assert perms['can_delete'] is False


def test_rejection_and_resubmission(client, app_instance):
    event_id = seed_event(app_instance, status='pending_gm')
    resp = assert_transition(client, event_id, headers_for(app_instance, GM), 'rejected', comment='Too costly')
    assert resp.get_json()['comment']['kind'] == 'rejection'
    assert_transition(client, event_id, headers_for(app_instance, SALES), 'draft')
    assert load_event(app_instance, event_id).status == 'draft'


def test_denied_by_role_is_403_with_reason(client, app_instance):
    event_id = seed_event(app_instance, status='pending_marketing')
    resp = patch_status(client, event_id, headers_for(app_instance, GM), 'approved')
    assert resp.status_code == 403
    err = resp.get_json()['error']
    assert err['reason'] == 'not_permitted'
    assert err['denied_by'] == 'role'
    assert err['detail'] == 'Only Marketing Head can give final approval'
    assert err['from_status'] == 'pending_marketing'
    assert load_event(app_instance, event_id).status == 'pending_marketing'
    assert comments_for(app_instance, event_id) == []


def test_denied_by_branch(client, app_instance):
    event_id = seed_event(app_instance, status='pending_gm', branch_id=1)
    resp = patch_status(client, event_id, headers_for(app_instance, OTHER_GM), 'pending_marketing')
    assert resp.status_code == 403
    assert resp.get_json()['error']['denied_by'] == 'branch'


def test_completion_not_ready_lists_missing(client, app_instance):
    event_id = seed_event(app_instance, status='approved', actual_budget=0, actual_enquiries=3)
    resp = patch_status(client, event_id, headers_for(app_instance, SALES), 'completed')
    assert resp.status_code == 400
    err = resp.get_json()['error']
    assert err['reason'] == 'not_ready'
    assert err['missing'] == ['Actual Cost', 'Actual Orders']
    perms = client.get(f'/api/events/{event_id}/permissions', headers=headers_for(app_instance, SALES)).get_json()
    assert perms['actions'][0]['code'] == 'completion_blocked'
    assert perms['ready_for_completion'] is False


def test_edge_absent_from_table_is_400(client, app_instance):
    event_id = seed_event(app_instance)
    resp = patch_status(client, event_id, headers_for(app_instance, ADMIN), 'approved')
    assert resp.status_code == 400
    assert resp.get_json()['error']['reason'] == 'no_such_transition'


def test_unknown_or_missing_status_is_400(client, app_instance):
    event_id = seed_event(app_instance)
    h = headers_for(app_instance, SALES)
    assert client.patch(f'/api/events/{event_id}/status', json={'status': 'archived'}, headers=h).status_code == 400
    assert client.patch(f'/api/events/{event_id}/status', json={}, headers=h).status_code == 400
    bad_comment = client.patch(f'/api/events/{event_id}/status', json={'status': 'pending_gm', 'comment': 5}, headers=h)
    assert bad_comment.status_code == 400


def test_stale_if_match_is_412(client, app_instance):
    event_id = seed_event(app_instance)
    sales = headers_for(app_instance, SALES)
    stale = current_etag(client, event_id, sales)
    assert client.put(f'/api/events/{event_id}', json={'title': 'Changed'}, headers={**sales, 'If-Match': stale}).status_code == 200
    resp = client.patch(f'/api/events/{event_id}/status', json={'status': 'pending_gm'}, headers={**sales, 'If-Match': stale})
    assert resp.status_code == 412
    assert load_event(app_instance, event_id).status == 'draft'


def test_if_match_required_when_configured(app_factory):
    app = app_factory(EVENTS_REQUIRE_IF_MATCH=True)
    client = app.test_client()
    event_id = seed_event(app)
    sales = headers_for(app, SALES)
    resp = patch_status(client, event_id, sales, 'pending_gm', if_match=False)
    assert resp.status_code == 428
    assert patch_status(client, event_id, sales, 'pending_gm').status_code == 200
    assert client.delete(f'/api/events/{event_id}', headers=sales).status_code == 428


def test_walk_to_approved_helper_reaches_approved(client, app_instance):
    event_id = create_event_and_assert(client, headers_for(app_instance, SALES))['id']
    walk_to_approved(client, app_instance, event_id)
    event = load_event(app_instance, event_id)
    assert event.status == 'approved'
    assert event.version == 4
