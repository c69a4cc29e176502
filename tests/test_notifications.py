"""
Notification fan-out, worker persistence and read flows
"""
import asyncio

import pytest
import redis

from auction_bidding.models import Notification
from auction_bidding.services import NotificationService
from auction_bidding.services.exceptions import InvalidRequestError, NotificationNotFoundError
from worker.notification_worker import NotificationWorker


@pytest.fixture
def worker(notification_queue, session_factory):
    return NotificationWorker(notification_queue, session_factory)


class TestDispatcher:

    def test_empty_recipient_list_not_queued(self, dispatcher, notification_queue):
        assert dispatcher.notify([], "t", "x") is None
        assert notification_queue.get_queue_length() == 0

    def test_job_carries_recipients(self, dispatcher, drain_jobs):
        job_id = dispatcher.notify([4, 5], "Title", "Text", auction_id=9)

        job, = drain_jobs()
        assert job["job_id"] == job_id
        assert job["user_ids"] == [4, 5]
        assert job["auction_id"] == 9


class TestNotificationWorker:

    def test_persists_one_row_per_recipient(self, db, dispatcher, worker):
        dispatcher.notify([1, 2, 3], "Hello", "World", auction_id=7)

        assert worker.drain(db) == 1

        rows = db.query(Notification).order_by(Notification.user_id).all()
        assert [n.user_id for n in rows] == [1, 2, 3]
        assert all(n.is_read is False and n.auction_id == 7 for n in rows)
        assert worker.get_stats()["notifications"] == 3

    def test_bid_fanout_end_to_end(self, db, bid_service, make_auction, worker):
        auction = make_auction(seller_id=100)
        bid_service.place_bid(db, auction.auction_id, bidder_id=1, price=5)
        bid_service.place_bid(db, auction.auction_id, bidder_id=2, price=10)

        worker.drain(db)

        assert [n.user_id for n in NotificationService.list_for_user(db, 1)] == [1]
        assert NotificationService.list_for_user(db, 2) == []
        assert len(NotificationService.list_for_user(db, 100)) == 2

    def test_malformed_job_dropped(self, db, worker, redis_client, notification_queue):
        redis_client.lpush(notification_queue.queue_key, '{"job_id": "bad", "user_ids": "oops"}')

        assert worker.drain(db) == 1
        assert db.query(Notification).count() == 0
        assert worker.get_stats()["dropped"] == 1

    def test_run_keeps_going_after_queue_outage(self, db, dispatcher, notification_queue, session_factory):
        dispatcher.notify([1, 2], "Hello", "World")
        calls = []

        class FlakyQueue:
            def dequeue(self, timeout=1):
                calls.append(timeout)
                if len(calls) == 1:
                    raise redis.ConnectionError("Connection refused")

                job = notification_queue.dequeue(timeout=None)
                if job is None:
                    worker.running = False
                return job

        worker = NotificationWorker(FlakyQueue(), session_factory, retry_delay=0)
        asyncio.run(worker.run())

        assert worker.get_stats()["errors"] == 1
        assert worker.get_stats()["processed"] == 1
        assert db.query(Notification).count() == 2


class TestReadFlows:

    @pytest.fixture
    def inbox(self, db):
        return NotificationService.create_many(db, [1, 1, 2], "Hi", "There", auction_id=3)

    def test_list_newest_first(self, db, inbox):
        listed = NotificationService.list_for_user(db, 1)

        assert [n.notification_id for n in listed] == sorted(
            (n.notification_id for n in inbox if n.user_id == 1), reverse=True
        )

    def test_mark_one_read(self, db, inbox):
        target = inbox[0]

        updated = NotificationService.mark_read(db, 1, notification_id=target.notification_id)

        assert updated.is_read is True
        assert db.query(Notification).filter(Notification.is_read == True).count() == 1  # noqa: E712

    def test_mark_someone_elses_notification(self, db, inbox):
        with pytest.raises(NotificationNotFoundError):
            NotificationService.mark_read(db, 2, notification_id=inbox[0].notification_id)

    def test_mark_all_read(self, db, inbox):
        assert NotificationService.mark_read(db, 1, all_read=True) == 2

        unread = db.query(Notification).filter(Notification.is_read == False).all()  # noqa: E712
        assert [n.user_id for n in unread] == [2]

    def test_requires_id_or_all_read(self, db, inbox):
        with pytest.raises(InvalidRequestError):
            NotificationService.mark_read(db, 1)
