import pytest
from sqlalchemy.exc import SQLAlchemyError

from workorbit.core.enums import RequestedRole
from workorbit.core.redis_service import RedisQueueService
from workorbit.notifications.models import Notification
from workorbit.notifications.service import NotificationDispatcher, notification_dispatcher
from workorbit.notifications.worker import NotificationWorker

QUEUE_KEY = "test:notifications"


class BrokenQueue:
    def enqueue(self, queue_key, payload):
        raise ConnectionError("redis went away")


@pytest.fixture
def queue(fake_redis):
    return RedisQueueService(client=fake_redis)


def test_dispatch_failure_is_swallowed():
    dispatcher = NotificationDispatcher(queue=BrokenQueue(), queue_key=QUEUE_KEY)
    assert dispatcher.notify_request_rejected("org", "user", "request", "No") is False


def test_unavailable_queue_drops_event():
    queue = RedisQueueService(client=None)
    dispatcher = NotificationDispatcher(queue=queue, queue_key=QUEUE_KEY)
    assert dispatcher.notify_employee_registered("org", "emp", "Eve", "eve@example.com", "employee") is False


def test_event_is_queued_as_json(queue, fake_redis):
    dispatcher = NotificationDispatcher(queue=queue, queue_key=QUEUE_KEY)

    assert dispatcher.notify_account_lockout("org-1", "user-1", "a@example.com", 15, "later") is True

    assert fake_redis.llen(QUEUE_KEY) == 1
    [event] = queue.dequeue_batch(QUEUE_KEY, 10)
    assert event["type"] == "account_lockout"
    assert event["category"] == "security"
    assert event["organization_id"] == "org-1"
    assert event["data"]["lockout_minutes"] == 15


def test_malformed_payload_is_skipped(queue, fake_redis):
    fake_redis.rpush(QUEUE_KEY, "{not json")
    fake_redis.rpush(QUEUE_KEY, '{"type": "ok"}')
    assert queue.dequeue_batch(QUEUE_KEY, 10) == [{"type": "ok"}]


def test_worker_stores_events_for_admin_and_recipient(db, factory, queue):
    admin, organization = factory.admin()
    requester, join_request = factory.staff_request(RequestedRole.HR, org_code=organization.org_code)
    dispatcher = NotificationDispatcher(queue=queue, queue_key=QUEUE_KEY)

    dispatcher.notify_employee_registered(organization.id, requester.id, requester.name, requester.email, "hr")
    dispatcher.notify_request_approved(organization.id, requester.id, join_request.id, "hr", admin.name)

    stored = NotificationWorker(db, queue=queue, queue_key=QUEUE_KEY).process_batch()

    assert stored == 2
    by_type = {n.type: n for n in db.query(Notification).all()}
    assert by_type["employee_registered"].recipient_id == admin.id
    assert by_type["request_approved"].recipient_id == requester.id
    assert by_type["request_approved"].data["request_id"] == str(join_request.id)


def test_worker_drops_events_without_recipient(db, queue):
    queue.enqueue(QUEUE_KEY, {"type": "orphan", "organization_id": None, "recipient_id": None})

    assert NotificationWorker(db, queue=queue, queue_key=QUEUE_KEY).process_batch() == 0
    assert db.query(Notification).count() == 0


def test_worker_drops_malformed_event_and_keeps_the_rest(db, factory, queue, fake_redis):
    admin, organization = factory.admin()
    queue.enqueue(QUEUE_KEY, {
        "type": "request_approved", "organization_id": "not-a-uuid", "recipient_id": str(admin.id),
        "category": "employee", "title": "Broken", "message": "Bad organization"
    })
    queue.enqueue(QUEUE_KEY, {
        "type": "employee_registered", "organization_id": str(organization.id),
        "category": "employee", "title": "New Employee Registered", "message": "Someone joined"
    })

    stored = NotificationWorker(db, queue=queue, queue_key=QUEUE_KEY).process_batch()

    assert stored == 1
    [notification] = db.query(Notification).all()
    assert notification.type == "employee_registered"
    assert notification.recipient_id == admin.id
    assert fake_redis.llen(QUEUE_KEY) == 0


def test_worker_drops_row_rejected_by_database(db, factory, queue, fake_redis):
    admin, organization = factory.admin()
    queue.enqueue(QUEUE_KEY, {
        "type": "account_lockout", "organization_id": str(organization.id), "recipient_id": str(admin.id),
        "category": "security", "title": None, "message": "Locked"
    })
    queue.enqueue(QUEUE_KEY, {
        "type": "request_rejected", "organization_id": str(organization.id), "recipient_id": str(admin.id),
        "category": "employee", "title": "Request Rejected", "message": "No"
    })

    stored = NotificationWorker(db, queue=queue, queue_key=QUEUE_KEY).process_batch()

    assert stored == 1
    assert [n.type for n in db.query(Notification).all()] == ["request_rejected"]
    assert fake_redis.llen(QUEUE_KEY) == 0


def test_worker_requeues_only_storable_events_when_commit_fails(db, factory, queue, fake_redis, monkeypatch):
    admin, organization = factory.admin()
    queue.enqueue(QUEUE_KEY, {"type": "broken", "organization_id": "not-a-uuid", "recipient_id": str(admin.id)})
    queue.enqueue(QUEUE_KEY, {
        "type": "employee_registered", "organization_id": str(organization.id),
        "category": "employee", "title": "New Employee Registered", "message": "Someone joined"
    })

    def failing_commit():
        raise SQLAlchemyError("database went away")

    monkeypatch.setattr(db, "commit", failing_commit)

    assert NotificationWorker(db, queue=queue, queue_key=QUEUE_KEY).process_batch() == 0
    assert [event["type"] for event in queue.dequeue_batch(QUEUE_KEY, 10)] == ["employee_registered"]


def test_approval_notifies_requester_end_to_end(client, db, factory, queue, auth_headers, monkeypatch):
    monkeypatch.setattr(notification_dispatcher, "queue", queue)
    monkeypatch.setattr(notification_dispatcher, "queue_key", QUEUE_KEY)
    admin, organization = factory.admin()
    requester, join_request = factory.staff_request(RequestedRole.HR, org_code=organization.org_code)

    response = client.put(
        f"/api/v1/hierarchy/requests/{join_request.id}/approve", json={}, headers=auth_headers(admin)
    )
    assert response.status_code == 200

    NotificationWorker(db, queue=queue, queue_key=QUEUE_KEY).process_batch()

    inbox = client.get("/api/v1/notifications/", headers=auth_headers(requester))
    assert inbox.status_code == 200
    body = inbox.json()
    assert body["unread_count"] == 1
    assert body["data"][0]["type"] == "request_approved"

    notification_id = body["data"][0]["id"]
    marked = client.put(f"/api/v1/notifications/{notification_id}/read", headers=auth_headers(requester))
    assert marked.status_code == 200
    assert marked.json()["data"]["is_read"] is True

    unread = client.get("/api/v1/notifications/?unread_only=true", headers=auth_headers(requester))
    assert unread.json()["unread_count"] == 0
    assert unread.json()["data"] == []


def test_other_users_notification_is_not_found(client, db, factory, auth_headers):
    admin, organization = factory.admin()
    other_admin, _ = factory.admin(organization_name="Other")
    notification = Notification(
        organization_id=organization.id,
        recipient_id=admin.id,
        type="employee_registered",
        category="employee",
        title="New Employee Registered",
        message="Someone joined"
    )
    db.add(notification)
    db.commit()

    response = client.put(f"/api/v1/notifications/{notification.id}/read", headers=auth_headers(other_admin))

    assert response.status_code == 404
