import io
import os
import tempfile
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest import mock

from airline_reservations.__main__ import main


class TestCli(unittest.TestCase):
    def setUp(self):
        tmp = tempfile.TemporaryDirectory()
        self.addCleanup(tmp.cleanup)
        self.data_dir = tmp.name
        env = mock.patch.dict(os.environ, {"AIRLINE_BCRYPT_ROUNDS": "4", "AIRLINE_LOG_FILE": ""})
        env.start()
        self.addCleanup(env.stop)

    def run_cli(self, *argv):
        out, err = io.StringIO(), io.StringIO()
        with redirect_stdout(out), redirect_stderr(err):
            rc = main(["--data-dir", self.data_dir, *argv])
        return rc, out.getvalue(), err.getvalue()

    def setup_flight(self, capacity=2):
        self.run_cli("signup", "--username", "root", "--password", "adminpw", "--name", "Site Admin", "--admin")
        self.run_cli("signup", "--username", "ana", "--password", "anapw", "--name", "Ana Reyes")
        self.run_cli("signup", "--username", "ben", "--password", "benpw", "--name", "Ben Cruz")
        rc, out, _ = self.run_cli(
            "flight-create",
            "--user", "root",
            "--password", "adminpw",
            "--airline", "Philippine Airlines",
            "--plane", "PR-101",
            "--capacity", str(capacity),
            "--destination", "Manila to Cebu",
            "--departure", "May 10, 2025 - 08:00 AM",
            "--arrival", "May 10, 2025 - 09:30 AM",
        )
        self.assertEqual(rc, 0)
        return out

    def test_signup(self):
        rc, out, _ = self.run_cli("signup", "--username", "ana", "--password", "anapw", "--name", "Ana Reyes")
        self.assertEqual(rc, 0)
        self.assertIn("Signed up ana (customer). You can now log in.", out)
        rc, _, err = self.run_cli("signup", "--username", "ana", "--password", "x", "--name", "Other")
        self.assertEqual(rc, 2)
        self.assertIn("username already exists", err)

    def test_create_and_show_flight(self):
        out = self.setup_flight(capacity=65)
        self.assertIn("Flight created: FL10001", out)
        self.assertIn("capacity=65 rows=11 seats_per_side=3", out)

        rc, out, _ = self.run_cli("flights", "--destination", "cebu")
        self.assertEqual(rc, 0)
        self.assertIn("FL10001", out)
        rc, out, _ = self.run_cli("flights", "--destination", "davao")
        self.assertIn("No flights available.", out)

    def test_book_and_show_seats(self):
        self.setup_flight()
        rc, out, _ = self.run_cli(
            "book", "FL10001", "--user", "ana", "--password", "anapw", "--seat", "1a", "--gcash-number", "0917"
        )
        self.assertEqual(rc, 0)
        self.assertIn("reservation_id=RES10001", out)
        self.assertIn("seat=1A", out)
        self.assertIn("payment=GCash: 0917", out)

        rc, out, _ = self.run_cli("seats", "FL10001")
        self.assertEqual(rc, 0)
        self.assertIn("Available Seats: 1 out of 2", out)
        self.assertIn(" 1  X   O   |   X   X", out)

        rc, out, _ = self.run_cli("bookings", "--user", "ana", "--password", "anapw")
        self.assertIn("RES10001", out)
        rc, out, _ = self.run_cli("bookings", "--user", "ben", "--password", "benpw")
        self.assertIn("No reservations found.", out)

    def test_card_payment(self):
        self.setup_flight()
        rc, out, _ = self.run_cli(
            "book", "FL10001",
            "--user", "ana",
            "--password", "anapw",
            "--payment", "card",
            "--card-number", "4111 1111 1111 1234",
            "--expiry", "07/27",
            "--cvv", "123",
        )
        self.assertEqual(rc, 0)
        self.assertIn("payment=Credit Card: XXXX-XXXX-XXXX-1234", out)

    def test_waitlist_and_promotion(self):
        self.setup_flight(capacity=1)
        self.run_cli("book", "FL10001", "--user", "ana", "--password", "anapw", "--gcash-number", "0917")

        rc, _, err = self.run_cli("book", "FL10001", "--user", "ben", "--password", "benpw", "--gcash-number", "1")
        self.assertEqual(rc, 2)
        self.assertIn("fully booked", err)

        rc, out, _ = self.run_cli(
            "book", "FL10001", "--user", "ben", "--password", "benpw", "--gcash-number", "1", "--waitlist"
        )
        self.assertEqual(rc, 0)
        self.assertIn("added to the waiting list", out)

        rc, out, _ = self.run_cli("waitlist", "FL10001", "--user", "root", "--password", "adminpw")
        self.assertIn("Ben Cruz", out)

        rc, out, _ = self.run_cli("cancel", "RES10001", "--user", "ana", "--password", "anapw", "--promote")
        self.assertEqual(rc, 0)
        self.assertIn("Promoted ben from the waiting list into seat 1A (RES10002)", out)

        rc, out, _ = self.run_cli("bookings", "--user", "root", "--password", "adminpw", "--flight", "FL10001")
        self.assertIn("RES10002", out)
        self.assertNotIn("RES10001", out)

    def test_role_checks(self):
        self.setup_flight()
        rc, _, err = self.run_cli("accounts", "--user", "ana", "--password", "anapw")
        self.assertEqual(rc, 2)
        self.assertIn("invalid user type", err)

        rc, _, err = self.run_cli("book", "FL10001", "--user", "ana", "--password", "wrong", "--gcash-number", "1")
        self.assertEqual(rc, 2)
        self.assertIn("invalid username or password", err)

        with mock.patch.dict(os.environ, {"AIRLINE_PASSWORD": "adminpw"}):
            rc, out, _ = self.run_cli("accounts", "--user", "root")
        self.assertEqual(rc, 0)
        self.assertIn("Ana Reyes", out)

    def test_failed_command_saves_nothing(self):
        self.setup_flight()
        rc, _, _ = self.run_cli("book", "FL10001", "--user", "ana", "--password", "anapw", "--seat", "1A")
        self.assertEqual(rc, 2)
        rc, out, _ = self.run_cli("seats", "FL10001")
        self.assertIn("Available Seats: 2 out of 2", out)

    def test_admin_maintenance(self):
        self.setup_flight(capacity=10)
        rc, out, _ = self.run_cli(
            "flight-update", "FL10001", "--user", "root", "--password", "adminpw", "--status", "Delayed"
        )
        self.assertEqual(rc, 0)
        self.assertIn("Delayed", out)

        rc, out, _ = self.run_cli("flight-capacity", "FL10001", "--user", "root", "--password", "adminpw", "--capacity", "200")
        self.assertEqual(rc, 0)
        self.assertIn("now has 200 seats in 23 rows", out)

        rc, out, _ = self.run_cli("account-delete", "ana", "--user", "root", "--password", "adminpw")
        self.assertEqual(rc, 0)
        rc, _, err = self.run_cli("bookings", "--user", "ana", "--password", "anapw")
        self.assertEqual(rc, 2)

        rc, out, _ = self.run_cli("flight-delete", "FL10001", "--user", "root", "--password", "adminpw")
        self.assertEqual(rc, 0)
        rc, _, err = self.run_cli("seats", "FL10001")
        self.assertEqual(rc, 2)
        self.assertIn("flight not found", err)


if __name__ == "__main__":
    unittest.main()
