import itertools
from datetime import datetime, timezone
import pytest
from portal.workflow.engine import (
    TRANSITIONS,
    apply_transition,
    available_actions,
    check_transition,
    transition_graph,
)
from portal.workflow.errors import (
    DENIED_BRANCH,
    DENIED_CREATOR,
    DENIED_ROLE,
    InvalidActorContext,
    NO_SUCH_TRANSITION,
    NOT_PERMITTED,
    NOT_READY,
    TransitionDenied,
)
from portal.workflow.records import Actor, CommentKind, EventRecord
from portal.workflow.states import ActorRole, EventStatus

BLOCKED = 'completion_blocked'
ACTOR_ID = 7
EVENT_BRANCH = 1


def make_event(status, creator=True, ready=False, **kw):
    actuals = dict(actual_budget=5000, actual_enquiries=0, actual_orders=0) if ready else {}
    actuals.update(kw)
    return EventRecord(
        id=11,
        status=EventStatus(status),
        creator_id=ACTOR_ID if creator else 99,
        branch_id=EVENT_BRANCH,
        budget=6000,
        **actuals,
    )


def make_actor(role, same_branch=True):
    return Actor(id=ACTOR_ID, role=ActorRole(role), branch_id=EVENT_BRANCH if same_branch else 2)


def expected_codes(status, role, creator, same_branch, ready):
    """Independent reading of the approval table."""
    admin = role == 'admin'
    sm, gm = role == 'sales_manager', role == 'general_manager'
    out = []
    if status == 'draft':
        if admin or (sm and creator):
            out.append('pending_gm')
        if admin or (gm and creator and same_branch):
            out.append('pending_marketing')
    elif status == 'pending_gm':
        if admin or (gm and same_branch):
            out += ['pending_marketing', 'rejected', 'draft']
    elif status == 'pending_marketing':
        if admin or role == 'marketing_head':
            out += ['approved', 'rejected', 'pending_gm']
    elif status == 'approved':
        if admin or role == 'marketing_manager' or ((sm or gm) and creator):
            out.append('completed' if ready else BLOCKED)
    elif status == 'rejected':
        if admin or ((sm or gm) and creator):
            out.append('draft')
    return out


COMBOS = list(itertools.product(
    [s.value for s in EventStatus],
    [r.value for r in ActorRole],
    [True, False],
    [True, False],
    [True, False],
))


@pytest.mark.parametrize('status,role,creator,same_branch,ready', COMBOS)
def test_available_actions_match_table(status, role, creator, same_branch, ready):
    event = make_event(status, creator=creator, ready=ready)
    actor = make_actor(role, same_branch)
    codes = [a.code for a in available_actions(event, actor)]
    assert codes == expected_codes(status, role, creator, same_branch, ready)


@pytest.mark.parametrize('status,role,creator,same_branch,ready', COMBOS)
def test_apply_transition_agrees_with_available_actions(status, role, creator, same_branch, ready):
    event = make_event(status, creator=creator, ready=ready)
    actor = make_actor(role, same_branch)
    allowed = set(expected_codes(status, role, creator, same_branch, ready)) - {BLOCKED}
    permitted_if_ready = set(expected_codes(status, role, creator, same_branch, True))
    graph = transition_graph()
    for target in EventStatus:
        if target.value in allowed:
            result = apply_transition(event, actor, target)
            assert result.event.status == target
            assert target.value in graph[status]
            continue
        with pytest.raises(TransitionDenied) as exc:
            apply_transition(event, actor, target)
        if target.value not in graph[status]:
            assert exc.value.reason == NO_SUCH_TRANSITION
        elif target.value in permitted_if_ready:
            assert exc.value.reason == NOT_READY
        else:
            assert exc.value.reason == NOT_PERMITTED


def test_completed_has_no_actions_for_anyone():
    event = make_event('completed', ready=True)
    for role in ActorRole:
        assert available_actions(event, make_actor(role.value)) == []
    assert TRANSITIONS[EventStatus.COMPLETED] == ()


def test_every_non_terminal_state_has_outgoing_edge():
    for status, edges in TRANSITIONS.items():
        if status != EventStatus.COMPLETED:
            assert edges, status


def test_admin_cannot_invent_edges():
    admin = Actor(id=1, role=ActorRole.ADMIN, branch_id=None)
    with pytest.raises(TransitionDenied) as exc:
        apply_transition(make_event('draft'), admin, 'approved')
    assert exc.value.reason == NO_SUCH_TRANSITION
    assert exc.value.from_status == 'draft'
    assert exc.value.to_status == 'approved'


def test_admin_without_branch_bypasses_branch_rule():
    admin = Actor(id=1, role=ActorRole.ADMIN, branch_id=None)
    codes = [a.code for a in available_actions(make_event('pending_gm', creator=False), admin)]
    assert codes == ['pending_marketing', 'rejected', 'draft']


def test_admin_still_needs_completion_readiness():
    admin = Actor(id=1, role=ActorRole.ADMIN)
    with pytest.raises(TransitionDenied) as exc:
        apply_transition(make_event('approved'), admin, 'completed')
    assert exc.value.reason == NOT_READY
    assert exc.value.missing == ('Actual Cost', 'Actual Enquiries', 'Actual Orders')


def test_sales_manager_submits_own_draft():
    event = EventRecord(id=1, status=EventStatus.DRAFT, creator_id=7, branch_id=1)
    actor = Actor(id=7, role=ActorRole.SALES_MANAGER, branch_id=1)
    actions = available_actions(event, actor)
    assert [a.to_status for a in actions] == [EventStatus.PENDING_GM]
    assert actions[0].label == 'Submit to GM'


def test_submit_produces_status_and_audit_comment():
    event = EventRecord(id=1, status=EventStatus.DRAFT, creator_id=7, branch_id=1)
    actor = Actor(id=7, role=ActorRole.SALES_MANAGER, branch_id=1)
    now = datetime(2026, 3, 1, 12, tzinfo=timezone.utc)
    new_event, comment = apply_transition(event, actor, EventStatus.PENDING_GM, 'Ready for review', now=now)
    assert new_event.status == EventStatus.PENDING_GM
    assert event.status == EventStatus.DRAFT  # input untouched
    assert comment.event_id == 1
    assert comment.author_id == 7
    assert comment.status_from == EventStatus.DRAFT
    assert comment.status_to == EventStatus.PENDING_GM
    assert comment.text == 'Ready for review'
    assert comment.created_at == now
    assert comment.kind == CommentKind.GENERAL


def test_blocked_completion_when_actuals_missing():
    event = make_event('approved', actual_budget=None)
    actor = make_actor('sales_manager')
    actions = available_actions(event, actor)
    assert len(actions) == 1
    blocked = actions[0]
    assert blocked.is_blocked
    assert blocked.to_status is None
    assert blocked.label == 'Complete (Missing Data)'
    assert 'Actual Cost' in blocked.missing
    assert EventStatus.COMPLETED not in [a.to_status for a in actions]


def test_completion_offered_when_ready_with_zero_counts():
    event = make_event('approved', actual_budget=5000, actual_enquiries=0, actual_orders=0)
    actions = available_actions(event, make_actor('sales_manager'))
    assert [a.to_status for a in actions] == [EventStatus.COMPLETED]


def test_available_actions_is_idempotent():
    event = make_event('pending_gm', creator=False)
    actor = make_actor('general_manager')
    assert available_actions(event, actor) == available_actions(event, actor)


@pytest.mark.parametrize('event,actor,target,denied_by', [
    (make_event('draft', creator=False), make_actor('sales_manager'), 'pending_gm', DENIED_CREATOR),
    (make_event('draft'), make_actor('marketing_head'), 'pending_gm', DENIED_ROLE),
    (make_event('pending_gm'), make_actor('general_manager', same_branch=False), 'rejected', DENIED_BRANCH),
    (make_event('draft'), make_actor('general_manager', same_branch=False), 'pending_marketing', DENIED_BRANCH),
    (make_event('approved', creator=False, ready=True), make_actor('general_manager'), 'completed', DENIED_CREATOR),
    (make_event('approved', ready=True), make_actor('marketing_head'), 'completed', DENIED_ROLE),
])
def test_denial_names_the_failed_check(event, actor, target, denied_by):
    with pytest.raises(TransitionDenied) as exc:
        check_transition(event, actor, target)
    assert exc.value.reason == NOT_PERMITTED
    assert exc.value.denied_by == denied_by
    assert exc.value.to_dict()['denied_by'] == denied_by


def test_gm_without_branch_is_never_same_branch():
    actor = Actor(id=20, role=ActorRole.GENERAL_MANAGER, branch_id=None)
    event = make_event('pending_gm', creator=False)
    assert available_actions(event, actor) == []


def test_permission_checked_before_readiness():
    event = make_event('approved', creator=False)
    with pytest.raises(TransitionDenied) as exc:
        apply_transition(event, make_actor('sales_manager'), 'completed')
    assert exc.value.reason == NOT_PERMITTED
    assert exc.value.message == 'Only Marketing Manager or the event creator can mark the event complete'


def test_unknown_target_status_is_no_such_transition():
    with pytest.raises(TransitionDenied) as exc:
        apply_transition(make_event('draft'), make_actor('sales_manager'), 'archived')
    assert exc.value.reason == NO_SUCH_TRANSITION


@pytest.mark.parametrize('target,kind', [
    ('pending_marketing', CommentKind.APPROVAL),
    ('rejected', CommentKind.REJECTION),
    ('draft', CommentKind.FEEDBACK),
])
def test_comment_kind_follows_target(target, kind):
    event = make_event('pending_gm', creator=False)
    _, comment = apply_transition(event, make_actor('general_manager'), target, '  looks fine  ')
    assert comment.kind == kind
    assert comment.text == 'looks fine'


def test_comment_is_optional_even_when_advised():
    event = make_event('pending_marketing')
    actor = make_actor('marketing_head')
    reject = [a for a in available_actions(event, actor) if a.to_status == EventStatus.REJECTED][0]
    assert reject.requires_comment is True
    _, comment = apply_transition(event, actor, 'rejected', '   ')
    assert comment.text is None
    assert comment.status_to == EventStatus.REJECTED


@pytest.mark.parametrize('actor', [
    Actor(id=None, role=ActorRole.SALES_MANAGER, branch_id=1),
    Actor(id=7, role=None, branch_id=1),
    Actor(id=7, role='sales_manager', branch_id=1),
])
def test_invalid_actor_context_is_a_hard_failure(actor):
    with pytest.raises(InvalidActorContext):
        available_actions(make_event('draft'), actor)
    with pytest.raises(InvalidActorContext):
        apply_transition(make_event('draft'), actor, 'pending_gm')


@pytest.mark.parametrize('raw_id,raw_role,missing', [
    (None, 'admin', ['id']),
    ('7', None, ['role']),
    ('', '', ['id', 'role']),
    ('seven', 'admin', ['id']),
    ('7', 'owner', ['role']),
])
def test_actor_build_validates_claims(raw_id, raw_role, missing):
    with pytest.raises(InvalidActorContext) as exc:
        Actor.build(raw_id, raw_role, 1)
    assert list(exc.value.missing) == missing


def test_actor_build_normalizes_values():
    actor = Actor.build('7', 'Sales_Manager', '3')
    assert actor == Actor(id=7, role=ActorRole.SALES_MANAGER, branch_id=3)
