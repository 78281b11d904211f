import unittest
from datetime import date

from models import Medication, SymptomEntry, User, calculate_age, is_valid_time


class CalculateAgeTests(unittest.TestCase):
    def test_birthday_not_yet_reached(self):
        self.assertEqual(calculate_age("2000-06-15", date(2024, 6, 14)), 23)

    def test_birthday_today(self):
        self.assertEqual(calculate_age("2000-06-15", date(2024, 6, 15)), 24)

    def test_bad_date_raises(self):
        with self.assertRaises(ValueError):
            calculate_age("15/06/2000", date(2024, 6, 15))


class UserRecordTests(unittest.TestCase):
    record = {
        "firstName": "Alice",
        "lastName": "Smith",
        "name": "Alice Smith",
        "gender": "female",
        "birthday": "1990-05-01",
        "age": 34,
        "email": "alice@example.com",
        "password": "Password123",
    }

    def test_from_dict_to_dict(self):
        user = User.from_dict(self.record)
        self.assertEqual(user.first_name, "Alice")
        self.assertEqual(user.to_dict(), self.record)
        self.assertNotIn("password", user.public_dict())

    def test_missing_field(self):
        data = dict(self.record)
        del data["email"]
        with self.assertRaises(ValueError):
            User.from_dict(data)

    def test_wrong_types(self):
        for key, value in [("age", "34"), ("age", True), ("gender", "robot"), ("name", None)]:
            with self.subTest(key=key, value=value):
                with self.assertRaises(ValueError):
                    User.from_dict({**self.record, key: value})

    def test_not_an_object(self):
        with self.assertRaises(ValueError):
            User.from_dict(["alice@example.com"])


class SymptomEntryTests(unittest.TestCase):
    def test_ids_are_unique(self):
        a = SymptomEntry(date="2024-01-01T08:00:00")
        b = SymptomEntry(date="2024-01-01T08:00:00")
        self.assertNotEqual(a.id, b.id)

    def test_wire_names(self):
        data = SymptomEntry(date="2024-01-01T08:00:00", sleep_hours=7.5).to_dict()
        self.assertEqual(
            set(data),
            {"id", "date", "symptoms", "sleepHours", "dietQuality", "exerciseMinutes", "medications"},
        )
        self.assertEqual(data["sleepHours"], 7.5)

    def test_symptoms_must_be_strings(self):
        data = SymptomEntry(date="2024-01-01T08:00:00").to_dict()
        data["symptoms"] = ["headache", 3]
        with self.assertRaises(ValueError):
            SymptomEntry.from_dict(data)

    def test_mentions_is_case_insensitive_substring(self):
        entry = SymptomEntry(date="2024-01-01", symptoms=["Morning Fatigue", "nausea"])
        self.assertTrue(entry.mentions("fatigue"))
        self.assertFalse(entry.mentions("headache"))


class MedicationTests(unittest.TestCase):
    def test_missing_weekly_status_defaults_empty(self):
        med = Medication.from_dict(
            {"id": "m1", "name": "Metformin", "time": "08:00", "takenToday": True}
        )
        self.assertEqual(med.weekly_status, {})
        self.assertTrue(med.taken_today)

    def test_bad_time_rejected(self):
        with self.assertRaises(ValueError):
            Medication.from_dict(
                {"id": "m1", "name": "Metformin", "time": "8am", "takenToday": False}
            )

    def test_weekly_status_values(self):
        with self.assertRaises(ValueError):
            Medication.from_dict({
                "id": "m1", "name": "Metformin", "time": "08:00", "takenToday": False,
                "weeklyStatus": {"2024-01-01": "yes"},
            })

    def test_is_valid_time(self):
        for value, ok in [("00:00", True), ("23:59", True), ("24:00", False), ("7:30", False), ("", False)]:
            with self.subTest(value=value):
                self.assertEqual(is_valid_time(value), ok)


if __name__ == "__main__":
    unittest.main()
