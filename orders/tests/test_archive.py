import json
from decimal import Decimal
from unittest import mock

import requests
from django.test import SimpleTestCase, TestCase, override_settings

from orders.archive import (
    OrderArchiveClient,
    RetryPolicy,
    archive_order,
    parse_archive_response,
    schedule_archival,
)
from orders.exceptions import ArchiveError, TransientArchiveError
from orders.models import Order, OrderItem


ARCHIVE_ON = {
    "ENDPOINT": "https://archive.example.test/exec",
    "SHARED_SECRET": "s3cret",
    "SOURCE": "almarky-web",
    "TIMEOUT_SECONDS": 15.0,
    "MAX_ATTEMPTS": 3,
    "BACKOFF_SECONDS": 0,
    "WORKERS": 1,
    "SYNCHRONOUS": True,
}
ARCHIVE_OFF = dict(ARCHIVE_ON, ENDPOINT="")


def make_response(status_code=200, payload=None, text=None):
    res = requests.Response()
    res.status_code = status_code
    res.reason = "OK" if status_code < 400 else "Error"
    res.url = ARCHIVE_ON["ENDPOINT"]
    res.encoding = "utf-8"
    res._content = (text if text is not None else json.dumps(payload)).encode("utf-8")
    return res


def make_order():
    order = Order.objects.create(
        order_number="ALM-12345678-123",
        uid="42",
        email="ayesha@example.com",
        subtotal=Decimal("3000.00"),
        delivery_total=Decimal("200.00"),
        grand_total=Decimal("3200.00"),
        full_name="Ayesha Khan",
        phone_pk="03001234567",
        province="Punjab",
        city="Lahore",
        tehsil="Model Town",
        district="Lahore",
        house_address="House 12, Street 4",
    )
    OrderItem.objects.create(
        order=order,
        position=1,
        product_id="p1",
        name="AirBuds X20",
        color="Black",
        quantity=2,
        unit_price=Decimal("1500.00"),
        delivery_fee=Decimal("200.00"),
        line_total=Decimal("3000.00"),
    )
    return order


class RetryPolicyTests(SimpleTestCase):
    def test_linear_backoff_until_success(self):
        calls, sleeps = [], []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise TransientArchiveError("network down")
            return "done"

        policy = RetryPolicy(max_attempts=3, base_delay=0.5)
        self.assertEqual(policy.run(flaky, sleep=sleeps.append), "done")
        self.assertEqual(sleeps, [0.5, 1.0])

    def test_non_retryable_error_fails_immediately(self):
        sleeps = []
        fn = mock.Mock(side_effect=ArchiveError("400"))
        with self.assertRaises(ArchiveError):
            RetryPolicy(max_attempts=4).run(fn, sleep=sleeps.append)
        self.assertEqual(fn.call_count, 1)
        self.assertEqual(sleeps, [])

    def test_gives_up_after_max_attempts(self):
        fn = mock.Mock(side_effect=TransientArchiveError("timeout"))
        with self.assertRaises(TransientArchiveError):
            RetryPolicy(max_attempts=2, base_delay=0).run(fn, sleep=lambda _: None)
        self.assertEqual(fn.call_count, 2)


class ArchiveResponseTests(SimpleTestCase):
    def test_accepts_alternate_keys(self):
        result = parse_archive_response(
            make_response(payload={"spreadsheetId": "sid", "fileUrl": "https://x/sid", "masterLogged": 1}), "oid"
        )
        self.assertEqual((result.sheet_id, result.sheet_url, result.master_logged), ("sid", "https://x/sid", True))

    def test_url_only_falls_back_to_order_id(self):
        result = parse_archive_response(make_response(payload={"orderSheetUrl": "https://x/1"}), "oid")
        self.assertEqual(result.sheet_id, "oid")

    def test_missing_identifiers_fail(self):
        with self.assertRaisesMessage(ArchiveError, "without orderSheetId"):
            parse_archive_response(make_response(payload={"ok": True}), "oid")

    def test_ok_false_uses_remote_message(self):
        with self.assertRaisesMessage(ArchiveError, "Sheet quota exceeded"):
            parse_archive_response(make_response(payload={"ok": False, "message": "Sheet quota exceeded"}), "oid")

    def test_client_error_is_not_transient(self):
        with self.assertRaises(ArchiveError) as ctx:
            parse_archive_response(make_response(403, payload={"message": "Forbidden secret"}), "oid")
        self.assertNotIsInstance(ctx.exception, TransientArchiveError)
        self.assertIn("(403): Forbidden secret", str(ctx.exception))

    def test_gateway_error_is_transient(self):
        with self.assertRaises(TransientArchiveError):
            parse_archive_response(make_response(503, text="upstream unavailable"), "oid")

    def test_login_wall_is_reported(self):
        with self.assertRaisesMessage(ArchiveError, "requires a Google login"):
            parse_archive_response(make_response(text="<html>Sign in - accounts.google.com</html>"), "oid")


class ArchiveClientTests(SimpleTestCase):
    def make_client(self, **kwargs):
        session = mock.Mock()
        client = OrderArchiveClient(
            ARCHIVE_ON["ENDPOINT"],
            secret="s3cret",
            timeout=15.0,
            policy=RetryPolicy(max_attempts=3, base_delay=0),
            session=session,
            sleep=lambda _: None,
            **kwargs,
        )
        return client, session

    def test_posts_payload_with_secret_and_timeout(self):
        client, session = self.make_client()
        session.post.return_value = make_response(payload={"orderSheetId": "s1", "orderSheetUrl": "https://x/s1"})
        result = client.create({"orderId": "oid", "orderNumber": "ALM-1"})
        self.assertEqual(result.sheet_id, "s1")
        session.post.assert_called_once_with(
            ARCHIVE_ON["ENDPOINT"],
            params={"secret": "s3cret"},
            json={"orderId": "oid", "orderNumber": "ALM-1"},
            timeout=15.0,
        )

    def test_retries_connection_errors_then_succeeds(self):
        client, session = self.make_client()
        session.post.side_effect = [
            requests.ConnectionError("reset"),
            requests.Timeout("slow"),
            make_response(payload={"orderSheetId": "s1", "orderSheetUrl": "https://x/s1"}),
        ]
        self.assertEqual(client.create({"orderId": "oid"}).sheet_id, "s1")
        self.assertEqual(session.post.call_count, 3)

    def test_client_error_is_not_retried(self):
        client, session = self.make_client()
        session.post.return_value = make_response(400, payload={"message": "bad payload"})
        with self.assertRaises(ArchiveError):
            client.create({"orderId": "oid"})
        self.assertEqual(session.post.call_count, 1)

    def test_missing_endpoint_is_rejected(self):
        with self.assertRaises(ArchiveError):
            OrderArchiveClient("")


@override_settings(ORDERS_ARCHIVE=ARCHIVE_ON)
class ArchiveOrderTests(TestCase):
    def setUp(self):
        self.order = make_order()

    def test_success_marks_archived(self):
        client = mock.Mock()
        client.create.return_value = mock.Mock(sheet_id="s1", sheet_url="https://x/s1", master_logged=True)
        self.assertEqual(archive_order(self.order.pk, client=client), Order.ArchiveStatus.ARCHIVED)

        payload = client.create.call_args.args[0]
        self.assertEqual(payload["source"], "almarky-web")
        self.assertEqual(payload["orderNumber"], "ALM-12345678-123")
        self.assertEqual(payload["customerDetails"]["phonePk"], "03001234567")
        self.assertEqual(payload["items"][0]["lineTotal"], 3000.0)
        self.assertEqual(payload["pricing"]["grandTotal"], 3200.0)

        self.order.refresh_from_db()
        self.assertEqual(self.order.archive_status, "archived")
        self.assertEqual(self.order.order_sheet_url, "https://x/s1")

    def test_failure_marks_delayed_and_keeps_order(self):
        client = mock.Mock()
        client.create.side_effect = TransientArchiveError("timed out")
        self.assertEqual(archive_order(self.order.pk, client=client), Order.ArchiveStatus.DELAYED)

        self.order.refresh_from_db()
        self.assertEqual(self.order.archive_status, "delayed")
        self.assertEqual(self.order.status, Order.Status.PENDING)
        self.assertEqual(self.order.items.count(), 1)

    def test_unknown_order_is_ignored(self):
        with self.assertLogs("orders.archive", level="ERROR"):
            self.assertIsNone(archive_order("00000000-0000-0000-0000-000000000000", client=mock.Mock()))

    @override_settings(ORDERS_ARCHIVE=ARCHIVE_OFF)
    def test_schedule_is_noop_when_disabled(self):
        with mock.patch("orders.archive.archive_order") as run:
            self.assertIsNone(schedule_archival(self.order.pk))
        run.assert_not_called()
        self.order.refresh_from_db()
        self.assertEqual(self.order.archive_status, "")

    def test_schedule_isolates_crashes(self):
        with mock.patch("orders.archive.archive_order", side_effect=RuntimeError("boom")):
            with self.assertLogs("orders.archive", level="ERROR"):
                self.assertIsNone(schedule_archival(self.order.pk))
