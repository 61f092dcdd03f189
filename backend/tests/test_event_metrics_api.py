from tests.test_lifecycle_helpers import ADMIN, GM, MARKETING_MANAGER, OTHER_SALES, SALES, headers_for
from tests.test_utils_seed import load_event, seed_event


def _put(client, event_id, headers, body):
    return client.put(f'/api/events/{event_id}/metrics', json=body, headers=headers)


def test_metrics_locked_before_approval(client, app_instance):
    event_id = seed_event(app_instance, status='pending_marketing')
    resp = _put(client, event_id, headers_for(app_instance, MARKETING_MANAGER), {'actual_budget': 100})
    assert resp.status_code == 403
    assert 'approved' in resp.get_json()['error']['detail']


def test_admin_also_waits_for_approval(client, app_instance):
    event_id = seed_event(app_instance, status='draft')
    assert _put(client, event_id, headers_for(app_instance, ADMIN), {'actual_orders': 1}).status_code == 403
    approved_id = seed_event(app_instance, status='approved')
    assert _put(client, approved_id, headers_for(app_instance, ADMIN), {'actual_orders': 1}).status_code == 200


def test_creator_records_actuals_after_approval(client, app_instance):
    event_id = seed_event(app_instance, status='approved')
    resp = _put(client, event_id, headers_for(app_instance, SALES), {'actual_budget': 950.5, 'actual_enquiries': 0})
    assert resp.status_code == 200, resp.get_json()
    body = resp.get_json()
    assert body['actual_budget'] == 950.5
    assert body['actual_enquiries'] == 0
    assert body['actual_orders'] is None
    assert body['version'] == 2


def test_null_clears_a_recorded_value(client, app_instance):
    event_id = seed_event(app_instance, status='completed', actual_budget=10, actual_enquiries=1, actual_orders=1)
    resp = _put(client, event_id, headers_for(app_instance, MARKETING_MANAGER), {'actual_orders': None})
    assert resp.status_code == 200
    assert load_event(app_instance, event_id).actual_orders is None


def test_non_creator_and_other_roles_refused(client, app_instance):
    event_id = seed_event(app_instance, status='approved')
    assert _put(client, event_id, headers_for(app_instance, OTHER_SALES), {'actual_orders': 2}).status_code == 403
    assert _put(client, event_id, headers_for(app_instance, GM), {'actual_orders': 2}).status_code == 403


def test_metrics_payload_validation(client, app_instance):
    event_id = seed_event(app_instance, status='approved')
    h = headers_for(app_instance, MARKETING_MANAGER)
    assert _put(client, event_id, h, {'title': 'x', 'actual_orders': 1}).status_code == 400
    assert _put(client, event_id, h, {}).status_code == 400
    assert _put(client, event_id, h, {'actual_orders': -1}).status_code == 400
    assert _put(client, event_id, h, {'actual_enquiries': 'many'}).status_code == 400
    assert _put(client, event_id, h, {'actual_budget': True}).status_code == 400
    assert load_event(app_instance, event_id).actual_orders is None
