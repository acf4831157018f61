import unittest

from storefront.keyword_responder import DEFAULT_FALLBACK, find_match, respond
from storefront.models import KeywordRecord


def _kw(id, keyword, priority=0, variations=None, active=True):
    return KeywordRecord(
        id=id,
        keyword=keyword,
        variations=variations or [],
        response=f"answer-{id}",
        priority=priority,
        isActive=active,
    )


class TestFindMatch(unittest.TestCase):
    def test_case_insensitive_substring(self):
        rec = _kw("1", "Shipping")
        self.assertIs(find_match("what about SHIPPING costs", [rec]), rec)

    def test_variation_matches(self):
        rec = _kw("1", "return", variations=["refund", "exchange"])
        self.assertIs(find_match("I want a refund", [rec]), rec)

    def test_empty_collection(self):
        self.assertIsNone(find_match("anything", []))

    def test_empty_message_matches_nothing(self):
        self.assertIsNone(find_match("", [_kw("1", "shipping")]))

    def test_inactive_never_returned(self):
        inactive = _kw("1", "refund", priority=99, active=False)
        other = _kw("2", "want")
        self.assertIs(find_match("I want a refund", [inactive, other]), other)
        self.assertIsNone(find_match("refund", [inactive]))

    def test_higher_priority_wins(self):
        low = _kw("low", "order", priority=1)
        high = _kw("high", "order status", priority=5)
        self.assertIs(find_match("what is my order status", [low, high]), high)

    def test_equal_priority_keeps_input_order(self):
        a = _kw("a", "ship", priority=3)
        b = _kw("b", "shipping", priority=3)
        self.assertIs(find_match("shipping please", [a, b]), a)
        self.assertIs(find_match("shipping please", [b, a]), b)

    def test_record_priority_beats_phrase_position(self):
        first = _kw("first", "zzz", priority=2, variations=["refund"])
        second = _kw("second", "refund", priority=1)
        self.assertIs(find_match("refund", [second, first]), first)

    def test_records_not_mutated(self):
        records = [_kw("a", "x", priority=1), _kw("b", "y", priority=9)]
        before = [r.id for r in records]
        find_match("x y", records)
        self.assertEqual([r.id for r in records], before)


class TestRespond(unittest.TestCase):
    def test_falls_back(self):
        self.assertEqual(respond("nothing here", [_kw("1", "shipping")]), DEFAULT_FALLBACK)
        self.assertEqual(respond("free shipping?", [_kw("1", "shipping")]), "answer-1")
        self.assertEqual(respond("nope", [], fallback="custom"), "custom")


class TestKeywordRecord(unittest.TestCase):
    def test_empty_keyword_rejected(self):
        with self.assertRaises(ValueError):
            KeywordRecord(keyword="   ", response="x")

    def test_blank_variations_dropped(self):
        rec = KeywordRecord(keyword="price", variations=["", "  ", "cost"], response="x")
        self.assertEqual(rec.variations, ["cost"])
        self.assertIsNone(find_match("hello there", [rec]))


if __name__ == '__main__':
    unittest.main()
