"""
Tests for the structured decoder and structured record accessors.
"""

import unittest

from logdiag.decoder import StructuredDecoder
from logdiag.models import StructuredRecord


class TestStructuredDecoder(unittest.TestCase):

    def setUp(self):
        self.decoder = StructuredDecoder()

    def test_decodes_object_lines(self):
        record = self.decoder.decode('  {"level": "info", "durationMs": 12}\n')

        self.assertIsNotNone(record)
        self.assertEqual(record.get_string("level"), "info")
        self.assertEqual(record.get_number("durationMs"), 12.0)
        self.assertEqual(len(self.decoder.records), 1)

    def test_trailing_text_is_tolerated(self):
        record = self.decoder.decode('{"level": "error"} trailing garbage')
        self.assertIsNotNone(record)
        self.assertEqual(record.get_string("level"), "error")

    def test_silent_fallback(self):
        """Lines that are not decodable objects yield None and are not recorded."""
        cases = [
            "plain text line",
            '{"level": "error"',
            "{not json at all}",
            '  [1, 2, 3]',
            "",
            'prefix {"level": "error"}',
        ]
        for line in cases:
            with self.subTest(line=line):
                self.assertIsNone(self.decoder.decode(line))
        self.assertEqual(self.decoder.records, [])

    def test_records_accumulate_in_order(self):
        self.decoder.decode('{"n": 1}')
        self.decoder.decode('not json')
        self.decoder.decode('{"n": 2}')

        self.assertEqual([r.get_number("n") for r in self.decoder.records], [1.0, 2.0])

        self.decoder.reset()
        self.assertEqual(self.decoder.records, [])


class TestStructuredRecord(unittest.TestCase):

    def setUp(self):
        self.record = StructuredRecord({
            "level": "error",
            "status": 500,
            "durationMs": "450",
            "flag": True,
            "nested": {"a": 1},
        })

    def test_typed_accessors_never_raise(self):
        self.assertIsNone(self.record.get_string("status"))
        self.assertIsNone(self.record.get_string("missing"))
        self.assertIsNone(self.record.get_number("level"))
        self.assertIsNone(self.record.get_number("flag"))
        self.assertIsNone(self.record.get_number("nested"))

    def test_first_matching_key_wins(self):
        self.assertEqual(self.record.get_number("missing", "status"), 500.0)
        self.assertEqual(self.record.get_number("durationMs"), 450.0)
        self.assertEqual(self.record.get_string("missing", "level"), "error")

    def test_record_is_a_copy(self):
        fields = {"level": "info"}
        record = StructuredRecord(fields)
        fields["level"] = "error"

        self.assertEqual(record.get_string("level"), "info")
        self.assertIn("level", record)
        self.assertEqual(record.to_dict(), {"level": "info"})


if __name__ == '__main__':
    unittest.main()
