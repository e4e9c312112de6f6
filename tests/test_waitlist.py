import unittest

from airline_reservations.errors import ValidationError
from airline_reservations.storage import MemoryStorage, load_text
from airline_reservations.waitlist import WaitingList, WaitingLists, waitlist_key


class TestWaitingList(unittest.TestCase):
    def test_fifo(self):
        wl = WaitingList("FL10001")
        self.assertTrue(wl.is_empty())
        self.assertIsNone(wl.peek())
        wl.add("ana", "Ana Reyes")
        wl.add("ben", "Ben Cruz")
        self.assertEqual(len(wl), 2)
        self.assertEqual(wl.peek().username, "ana")
        self.assertEqual(wl.pop().username, "ana")
        self.assertEqual(wl.pop().username, "ben")
        with self.assertRaises(ValidationError):
            wl.pop()

    def test_one_entry_per_user(self):
        wl = WaitingList("FL10001")
        wl.add("ana", "Ana Reyes")
        with self.assertRaises(ValidationError):
            wl.add("ana", "Someone Else")
        self.assertEqual(len(wl), 1)

    def test_remove(self):
        wl = WaitingList("FL10001")
        wl.add("ana", "Ana Reyes")
        wl.add("ben", "Ben Cruz")
        self.assertIn("ben", wl)
        self.assertTrue(wl.remove("ben"))
        self.assertNotIn("ben", wl)
        self.assertFalse(wl.remove("ben"))
        self.assertEqual([e.username for e in wl], ["ana"])

    def test_blank_names_rejected(self):
        wl = WaitingList("FL10001")
        with self.assertRaises(ValidationError):
            wl.add("ana", " ")


class TestWaitingLists(unittest.TestCase):
    def setUp(self):
        self.storage = MemoryStorage()
        self.lists = WaitingLists(self.storage)

    def test_save_and_load(self):
        self.lists.for_flight("FL10001").add("ana", "Ana Reyes")
        self.lists.for_flight("FL10001").add("ben", "Ben Cruz")
        self.lists.for_flight("FL10002")
        self.lists.save()
        self.assertEqual(load_text(self.storage, waitlist_key("FL10001")), "ana,Ana Reyes\nben,Ben Cruz\n")
        self.assertFalse(self.storage.exists(waitlist_key("FL10002")))

        other = WaitingLists(self.storage)
        other.load(["FL10001", "FL10002"])
        self.assertEqual([e.username for e in other.get("FL10001")], ["ana", "ben"])
        self.assertTrue(other.get("FL10002").is_empty())

    def test_emptied_list_removes_file(self):
        self.lists.for_flight("FL10001").add("ana", "Ana Reyes")
        self.lists.save()
        self.lists.for_flight("FL10001").pop()
        self.lists.save()
        self.assertFalse(self.storage.exists(waitlist_key("FL10001")))

    def test_load_skips_duplicates(self):
        self.storage.save(waitlist_key("FL10001"), b"ana,Ana Reyes\nana,Ana Again\nben,Ben Cruz\n")
        self.lists.load(["FL10001"])
        self.assertEqual([e.passenger_name for e in self.lists.get("FL10001")], ["Ana Reyes", "Ben Cruz"])

    def test_drop(self):
        self.lists.for_flight("FL10001").add("ana", "Ana Reyes")
        self.lists.save()
        self.lists.drop("FL10001")
        self.assertIsNone(self.lists.get("FL10001"))
        self.assertTrue(self.storage.exists(waitlist_key("FL10001")))
        self.lists.save()
        self.assertFalse(self.storage.exists(waitlist_key("FL10001")))

    def test_remove_user_everywhere(self):
        self.lists.for_flight("FL10001").add("ana", "Ana Reyes")
        self.lists.for_flight("FL10002").add("ben", "Ben Cruz")
        self.lists.for_flight("FL10003").add("ana", "Ana Reyes")
        self.assertEqual(self.lists.remove_user_everywhere("ana"), ["FL10001", "FL10003"])
        self.assertNotIn("ana", self.lists.get("FL10001"))
        self.assertIn("ben", self.lists.get("FL10002"))


if __name__ == "__main__":
    unittest.main()
