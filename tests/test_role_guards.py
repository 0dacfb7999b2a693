import os
import sys
import unittest
from unittest.mock import MagicMock, patch

os.environ.setdefault("DATABASE_URL", "sqlite://")

# Add parent directory to path to import modules
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from db.init import import_models

import_models()

from models.attendance import AttendanceType
from models.role import ValidRoles
from routers.attendance import CheckInRequest, check_in, get_history
from utils.deps import ensure_roles, get_current_user, has_any_role
from utils.errors import ForbiddenError, UnauthorizedError
from utils.security import create_access_token


def mock_user(*roles, active=True):
    user = MagicMock()
    user.id = "user_123"
    user.email = "someone@example.com"
    user.is_active = active
    user.role_names = set(roles)
    return user


class TestEnsureRoles(unittest.TestCase):
    def test_any_listed_role_passes(self):
        ensure_roles(mock_user("coach"), [ValidRoles.coach, ValidRoles.admin])

    def test_missing_role_is_forbidden(self):
        with self.assertRaises(ForbiddenError) as ctx:
            ensure_roles(mock_user("client"), [ValidRoles.receptionist])
        self.assertEqual(ctx.exception.status_code, 403)
        self.assertIn("receptionist", ctx.exception.detail)

    def test_no_roles_means_any_authenticated_user(self):
        ensure_roles(mock_user(), [])

    def test_has_any_role_accepts_plain_strings(self):
        self.assertTrue(has_any_role(mock_user("admin"), ["admin"]))
        self.assertFalse(has_any_role(mock_user("admin"), ["coach"]))


class TestCurrentUser(unittest.TestCase):
    def setUp(self):
        self.mock_db = MagicMock()

    def credentials(self, token):
        creds = MagicMock()
        creds.scheme = "Bearer"
        creds.credentials = token
        return creds

    def test_missing_credentials(self):
        with self.assertRaises(UnauthorizedError):
            get_current_user(credentials=None, db=self.mock_db)

    def test_garbage_token(self):
        with self.assertRaises(UnauthorizedError):
            get_current_user(credentials=self.credentials("not-a-jwt"), db=self.mock_db)

    def test_inactive_user(self):
        self.mock_db.query.return_value.filter.return_value.first.return_value = mock_user("client", active=False)
        token = create_access_token({"id": "user_123", "email": "someone@example.com"})

        with self.assertRaises(UnauthorizedError):
            get_current_user(credentials=self.credentials(token), db=self.mock_db)

    def test_valid_token(self):
        user = mock_user("client")
        self.mock_db.query.return_value.filter.return_value.first.return_value = user
        token = create_access_token({"id": "user_123", "email": "someone@example.com"})

        self.assertIs(get_current_user(credentials=self.credentials(token), db=self.mock_db), user)


class TestAttendanceEndpoints(unittest.TestCase):
    def setUp(self):
        self.mock_db = MagicMock()

    @patch("routers.attendance.attendance_service")
    def test_check_in_delegates_to_service(self, mock_service):
        attendance = MagicMock()
        attendance.id = "att_1"
        attendance.user_id = "user_123"
        attendance.type = AttendanceType.GYM
        attendance.is_active = True
        mock_service.check_in.return_value = attendance

        response = check_in(
            body=CheckInRequest(userId="user_123", type="gym"),
            db=self.mock_db,
            receptionist=mock_user("receptionist"),
        )

        mock_service.check_in.assert_called_once_with(self.mock_db, "user_123", AttendanceType.GYM)
        self.assertEqual(response["id"], "att_1")
        self.assertEqual(response["type"], "gym")
        self.assertTrue(response["isActive"])

    @patch("routers.attendance.attendance_service")
    def test_history_passes_filters(self, mock_service):
        mock_service.get_user_attendance_history.return_value = []

        response = get_history(user_id="user_123", from_=None, to=None, type=AttendanceType.CLASS, db=self.mock_db)

        self.assertEqual(response, [])
        mock_service.get_user_attendance_history.assert_called_once_with(
            self.mock_db, "user_123", from_=None, to=None, type=AttendanceType.CLASS
        )


if __name__ == "__main__":
    unittest.main()
