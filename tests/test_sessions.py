import unittest
from datetime import datetime, timedelta, timezone

from scalpdesk.indicators.sessions import classify_session, session_for


class TestSessions(unittest.TestCase):
    def test_hour_map(self):
        expected = {
            0: "Asia",
            6: "Asia",
            7: "Overlap",
            8: "London",
            11: "London",
            12: "Overlap",
            15: "Overlap",
            16: "New York",
            20: "New York",
            21: "Closed",
            23: "Closed",
        }
        for hour, name in expected.items():
            self.assertEqual(classify_session(hour), name, hour)

    def test_session_for_converts_to_utc(self):
        est = timezone(timedelta(hours=-5))
        # 03:00 EST == 08:00 UTC
        self.assertEqual(session_for(datetime(2024, 1, 2, 3, 0, tzinfo=est)), "London")


if __name__ == "__main__":
    unittest.main()
