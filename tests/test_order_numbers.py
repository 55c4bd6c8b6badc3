import re
from datetime import datetime

from storefront.models.order import OrderSequence
from storefront.services.order_numbers import next_order_number


class TestNextOrderNumber:
    def test_format(self, db):
        number = next_order_number(db, datetime(2024, 3, 7, 15, 30))
        assert re.fullmatch(r"ORD\d{8}\d{4}", number)
        assert number == "ORD202403070001"

    def test_sequential_within_a_day(self, db):
        day = datetime(2024, 3, 7, 9, 0)
        first = next_order_number(db, day)
        second = next_order_number(db, day.replace(hour=23))
        db.commit()

        assert first == "ORD202403070001"
        assert second == "ORD202403070002"

    def test_counter_restarts_each_day(self, db):
        next_order_number(db, datetime(2024, 3, 7))
        next_order_number(db, datetime(2024, 3, 7))
        number = next_order_number(db, datetime(2024, 3, 8))
        db.commit()

        assert number == "ORD202403080001"
        assert db.get(OrderSequence, "20240307").value == 2

    def test_rollback_releases_the_number(self, db):
        day = datetime(2024, 3, 7)
        next_order_number(db, day)
        db.commit()

        next_order_number(db, day)
        db.rollback()

        assert next_order_number(db, day) == "ORD202403070002"
