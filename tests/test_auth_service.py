import calendar
import unittest
from datetime import timedelta
from unittest.mock import patch

from db_case import NOW, DatabaseTestCase
from jose import jwt

from models.attendance import Attendance, AttendanceType
from models.gym_class import GymClass
from models.role import ValidRoles
from models.subscription import Subscription
from services import attendances as attendance_service
from services import auth as svc
from services import classes as class_service
from utils.errors import BadRequestError, ForbiddenError, NotFoundError, UnauthorizedError
from utils.security import create_access_token, decode_token


class TestRegisterAndLogin(DatabaseTestCase):
    def test_register_creates_client_with_subscription(self):
        result = svc.register(self.db, "  New.Member@Example.com ", "New Member", 22, "secret123")

        self.assertEqual(result["email"], "new.member@example.com")
        self.assertEqual(result["roles"], ["client"])
        self.assertEqual(decode_token(result["token"])["id"], result["id"])
        subscriptions = self.db.query(Subscription).filter(Subscription.user_id == result["id"]).all()
        self.assertEqual(len(subscriptions), 1)
        self.assertTrue(subscriptions[0].is_active)

    def test_duplicate_email(self):
        svc.register(self.db, "dup@example.com", "Dup", 22, "secret123")
        with self.assertRaises(BadRequestError):
            svc.register(self.db, "DUP@example.com", "Dup Again", 23, "secret123")

    def test_login(self):
        svc.register(self.db, "login@example.com", "Login", 22, "secret123")

        result = svc.login(self.db, "Login@Example.com", "secret123")
        self.assertEqual(result["email"], "login@example.com")
        self.assertIn("token", result)

        with self.assertRaises(UnauthorizedError):
            svc.login(self.db, "login@example.com", "wrong-password")
        with self.assertRaises(NotFoundError):
            svc.login(self.db, "nobody@example.com", "secret123")


class TestUsersAndRoles(DatabaseTestCase):
    def setUp(self):
        super().setUp()
        self.admin = self.make_user("boss@example.com", roles=("admin",))
        self.client = self.make_user("member@example.com")

    def test_client_cannot_update_someone_else(self):
        other = self.make_user("other@example.com")
        with self.assertRaises(ForbiddenError):
            svc.update_user(self.db, other.id, {"full_name": "Hacked"}, acting_user=self.client)

    def test_client_updates_own_profile(self):
        user = svc.update_user(self.db, self.client.id, {"full_name": "Renamed", "age": 41}, acting_user=self.client)
        self.assertEqual((user.full_name, user.age), ("Renamed", 41))

    def test_update_to_taken_email(self):
        with self.assertRaises(BadRequestError):
            svc.update_user(self.db, self.client.id, {"email": "boss@example.com"}, acting_user=self.admin)

    def test_last_admin_is_protected(self):
        with self.assertRaises(BadRequestError):
            svc.remove_user(self.db, self.admin.id)
        with self.assertRaises(BadRequestError):
            svc.assign_roles(self.db, self.admin.id, [ValidRoles.coach])
        with self.assertRaises(BadRequestError):
            svc.remove_roles(self.db, self.admin.id, [ValidRoles.admin])

    def test_admin_can_be_demoted_when_another_exists(self):
        self.make_user("boss2@example.com", roles=("admin",))
        user = svc.assign_roles(self.db, self.admin.id, [ValidRoles.coach])
        self.assertEqual(user.role_names, {"coach"})

    def test_add_roles_keeps_existing(self):
        user = svc.add_roles(self.db, self.client.id, [ValidRoles.receptionist, ValidRoles.client])
        self.assertEqual(user.role_names, {"client", "receptionist"})

    def test_removing_every_role_falls_back_to_client(self):
        coach = self.make_user("trainer@example.com", roles=("coach",))
        user = svc.remove_roles(self.db, coach.id, [ValidRoles.coach])
        self.assertEqual(user.role_names, {"client"})

    def test_remove_user(self):
        svc.remove_user(self.db, self.client.id)
        with self.assertRaises(NotFoundError):
            svc.find_user(self.db, self.client.id)


class TestRemoveCoach(DatabaseTestCase):
    enforce_foreign_keys = True

    def test_removing_a_coach_keeps_classes_and_attendances(self):
        coach = self.make_user("trainer@example.com", roles=("coach",), with_subscription=False)
        member = self.make_user("member@example.com")
        self.add_item(member, gym=0, classes=4)
        gym_class = class_service.create(self.db, {"name": "Spin", "duration_minutes": 45}, created_by=coach)
        attendance = attendance_service.check_in(
            self.db, member.id, AttendanceType.CLASS, now=NOW, class_id=gym_class.id, coach=coach
        )
        class_id, attendance_id, coach_id = gym_class.id, attendance.id, coach.id

        svc.remove_user(self.db, coach_id)
        self.db.expire_all()

        with self.assertRaises(NotFoundError):
            svc.find_user(self.db, coach_id)
        self.assertIsNone(self.db.query(GymClass).filter(GymClass.id == class_id).one().created_by_id)
        kept = self.db.query(Attendance).filter(Attendance.id == attendance_id).one()
        self.assertIsNone(kept.coach_id)
        self.assertEqual(kept.user_id, member.id)


class TestTokenClock(unittest.TestCase):
    @patch("utils.security.utcnow")
    def test_expiry_counts_from_the_shared_clock(self, mock_utcnow):
        mock_utcnow.return_value = NOW
        token = create_access_token({"id": "user_123"}, expires_minutes=30)

        mock_utcnow.assert_called_once_with()
        expected = calendar.timegm((NOW + timedelta(minutes=30)).utctimetuple())
        self.assertEqual(jwt.get_unverified_claims(token)["exp"], expected)
        # issued in 2025, long expired
        self.assertIsNone(decode_token(token))


if __name__ == "__main__":
    unittest.main()
