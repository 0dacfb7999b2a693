import gc
import unittest
from datetime import datetime
from unittest.mock import patch

from db_case import NOW, DatabaseTestCase

from models.attendance import AttendanceType
from models.subscription import SubscriptionItemStatus
from services import attendances as svc


class TestAvailableAttendances(DatabaseTestCase):
    def test_no_items_means_no_passes(self):
        user = self.make_user()
        self.assertEqual(svc.calculate_available_attendances(self.db, user.id, now=NOW), {"gym": 0, "classes": 0})

    def test_no_subscription_means_no_passes(self):
        user = self.make_user(with_subscription=False)
        self.assertEqual(svc.calculate_available_attendances(self.db, user.id, now=NOW), {"gym": 0, "classes": 0})

    def test_items_bought_after_a_collection_are_counted(self):
        user = self.make_user()
        # only the session holds the subscription at this point
        gc.collect()
        self.add_item(user, gym=3, classes=1)
        self.db.expire_all()

        self.assertEqual(len(self.subscription_of(user).items), 1)
        self.assertEqual(svc.calculate_available_attendances(self.db, user.id, now=NOW), {"gym": 3, "classes": 1})

    def test_allowance_minus_usage_this_month(self):
        user = self.make_user()
        self.add_item(user, gym=15, classes=8)
        self.add_item(user, gym=5, classes=2)
        for day in (2, 5, 9):
            self.add_attendance(user, AttendanceType.GYM, datetime(2025, 6, day, 10))
        self.add_attendance(user, AttendanceType.CLASS, datetime(2025, 6, 10, 18))

        available = svc.calculate_available_attendances(self.db, user.id, now=NOW)

        self.assertEqual(available, {"gym": 20 - 3, "classes": 10 - 1})

    def test_previous_month_usage_is_not_counted(self):
        user = self.make_user()
        self.add_item(user, gym=2, classes=0)
        self.add_attendance(user, AttendanceType.GYM, datetime(2025, 5, 10, 10))
        self.add_attendance(user, AttendanceType.GYM, datetime(2025, 7, 10, 10))

        self.assertEqual(svc.calculate_available_attendances(self.db, user.id, now=NOW)["gym"], 2)

    def test_overused_quota_clamps_to_zero(self):
        user = self.make_user()
        self.add_item(user, gym=1, classes=1)
        for day in (3, 4, 5):
            self.add_attendance(user, AttendanceType.GYM, datetime(2025, 6, day, 10))

        self.assertEqual(svc.calculate_available_attendances(self.db, user.id, now=NOW), {"gym": 0, "classes": 1})

    def test_only_active_items_count(self):
        user = self.make_user()
        self.add_item(user, gym=10, classes=4, status=SubscriptionItemStatus.ACTIVE)
        self.add_item(user, gym=30, classes=20, status=SubscriptionItemStatus.PENDING)
        self.add_item(user, gym=30, classes=20, status=SubscriptionItemStatus.EXPIRED)
        self.add_item(user, gym=30, classes=20, status=SubscriptionItemStatus.CANCELLED)

        self.assertEqual(svc.calculate_available_attendances(self.db, user.id, now=NOW), {"gym": 10, "classes": 4})

    def test_inactive_subscription_grants_nothing(self):
        user = self.make_user()
        self.add_item(user, gym=10, classes=4)
        subscription = self.subscription_of(user)
        subscription.is_active = False
        self.db.commit()

        self.assertEqual(svc.calculate_available_attendances(self.db, user.id, now=NOW), {"gym": 0, "classes": 0})

    def test_lookup_failure_means_zero_passes(self):
        user = self.make_user()
        self.add_item(user, gym=10, classes=4)

        with patch.object(svc, "calculate_available_attendances", side_effect=RuntimeError("broken relation")):
            self.assertEqual(svc.has_available_attendances(self.db, user.id, AttendanceType.GYM), 0)

    def test_has_available_picks_requested_type(self):
        user = self.make_user()
        self.add_item(user, gym=10, classes=4)

        self.assertEqual(svc.has_available_attendances(self.db, user.id, AttendanceType.GYM, now=NOW), 10)
        self.assertEqual(svc.has_available_attendances(self.db, user.id, AttendanceType.CLASS, now=NOW), 4)


if __name__ == "__main__":
    unittest.main()
