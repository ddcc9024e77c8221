import httpx
import pytest
from sqlalchemy.exc import OperationalError

from services.lifecycle import ADMIN_POOL, Action, PaymentMethod, Transition
from services.lifecycle.notices import build_notice
from services.notification_service import emitter as emitter_module
from services.notification_service.emitter import SqlNotificationEmitter
from services.notification_service.models import NotificationModel
from services.notification_service.repository import NotificationRepository
from services.notification_service.service import NotificationService, inbox_ids

from factories import ADMIN, CUSTOMER, build_order, build_payment, completed


class _FakeSession:
    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


def _session_factory():
    return _FakeSession()


@pytest.fixture
def stored(monkeypatch):
    """Replaces the insert with one that fails ``failures`` times first."""
    state = {"failures": 0, "calls": 0, "rows": []}

    async def create_notification(db, notification):
        state["calls"] += 1
        if state["failures"]:
            state["failures"] -= 1
            raise OperationalError("INSERT INTO notifications", {}, Exception("connection reset"))
        notification.id = len(state["rows"]) + 1
        state["rows"].append(notification)
        return notification

    monkeypatch.setattr(NotificationRepository, "create_notification", staticmethod(create_notification))
    monkeypatch.setattr(emitter_module, "RETRY_BACKOFF_SECONDS", 0)
    return state


@pytest.mark.service
class TestNotices:

    def _tip(self, amount):
        order = completed(tip_amount=amount)
        return Transition(Action.SUBMIT_TIP, CUSTOMER, order, build_payment(), order.status)

    def test_tip_goes_to_assigned_staff(self):
        notice = build_notice(self._tip(20000), "id")
        assert notice.recipient_id == "staff-7"
        assert "Rp 20.000" in notice.message

    def test_skipped_tip_wording(self):
        assert build_notice(self._tip(0), "en").title == "Tip Skipped"

    def test_unknown_language_falls_back(self):
        assert build_notice(self._tip(5000), "fr").title == "Tip Diterima"

    def test_admin_cancel_tells_customer(self):
        order = completed()
        transition = Transition(Action.CANCEL, ADMIN, order, build_payment(), order.status)
        assert build_notice(transition, "id").recipient_id == CUSTOMER.id

    def test_method_change_names_new_method(self):
        order = build_order()
        payment = build_payment(method=PaymentMethod.TRANSFER)
        transition = Transition(Action.CHANGE_PAYMENT_METHOD, CUSTOMER, order, payment, order.status)
        notice = build_notice(transition, "en")
        assert notice.recipient_id == ADMIN_POOL
        assert notice.message == "The customer switched order #1 to TRANSFER."


@pytest.mark.service
class TestSqlNotificationEmitter:

    async def test_stores_row(self, stored):
        emitter = SqlNotificationEmitter(_session_factory, max_attempts=3, push_url="")
        await emitter.emit(ADMIN_POOL, "Pesanan Baru Masuk", "Pesanan #1 masuk.", 1)
        assert stored["calls"] == 1
        assert stored["rows"][0].recipient_id == ADMIN_POOL
        assert stored["rows"][0].is_read is False

    async def test_retries_transient_failures(self, stored):
        stored["failures"] = 2
        emitter = SqlNotificationEmitter(_session_factory, max_attempts=3, push_url="")
        await emitter.emit(CUSTOMER.id, "t", "m", 1)
        assert stored["calls"] == 3
        assert len(stored["rows"]) == 1

    async def test_gives_up_after_max_attempts(self, stored):
        stored["failures"] = 5
        emitter = SqlNotificationEmitter(_session_factory, max_attempts=2, push_url="")
        with pytest.raises(OperationalError):
            await emitter.emit(CUSTOMER.id, "t", "m", 1)
        assert stored["calls"] == 2

    async def test_pushes_stored_row(self, stored):
        received = []

        def handler(request):
            received.append(request)
            return httpx.Response(202)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        emitter = SqlNotificationEmitter(
            _session_factory, push_url="http://push.local/notify", http_client=client
        )
        await emitter.emit(CUSTOMER.id, "Pesanan Selesai", "Pesanan #1 telah selesai.", 1)
        await client.aclose()

        assert len(received) == 1
        assert received[0].url == "http://push.local/notify"
        assert b'"recipient_id":"cust-1"' in received[0].content.replace(b" ", b"")

    async def test_push_failure_keeps_stored_row(self, stored):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(503)))
        emitter = SqlNotificationEmitter(
            _session_factory, push_url="http://push.local/notify", http_client=client
        )
        await emitter.emit(CUSTOMER.id, "t", "m", 1)
        await client.aclose()
        assert len(stored["rows"]) == 1


@pytest.mark.service
class TestInbox:

    def test_admins_read_the_shared_pool(self):
        assert inbox_ids(ADMIN) == [ADMIN.id, ADMIN_POOL]
        assert inbox_ids(CUSTOMER) == [CUSTOMER.id]

    async def test_mark_read_hides_other_inboxes(self, monkeypatch):
        row = NotificationModel(id=3, recipient_id=ADMIN_POOL, title="t", message="m", is_read=False)

        async def get_notification(db, notification_id):
            return row

        async def mark_read(db, notification):
            notification.is_read = True
            return notification

        monkeypatch.setattr(NotificationRepository, "get_notification", staticmethod(get_notification))
        monkeypatch.setattr(NotificationRepository, "mark_read", staticmethod(mark_read))

        assert await NotificationService.mark_read(None, CUSTOMER, 3) is None
        assert row.is_read is False
        marked = await NotificationService.mark_read(None, ADMIN, 3)
        assert marked.is_read is True
