import io
import unittest

from castwright.asciicast import AsciiCastError, AsciiCastV2Event, AsciiCastV2Header
from castwright.timeline import InvalidHeaderError, OrderingViolation, Timeline, \
    is_end_marker

HEADER = AsciiCastV2Header(2, 80, 24, env={'SHELL': '/bin/sh', 'TERM': 'xterm'})
FRESH_HEADER = AsciiCastV2Header(2, env={'SHELL': '/bin/bash', 'TERM': 'linux'})


def make_timeline(header, events):
    timeline = Timeline.new(header)
    for time, data in events:
        timeline.append(AsciiCastV2Event(time, 'o', data))
    return timeline


class TestTimeline(unittest.TestCase):
    def test_new(self):
        timeline = Timeline.new(HEADER)
        self.assertEqual(timeline.header, HEADER)
        self.assertEqual(timeline.events, [])
        self.assertEqual(timeline.duration, 0.0)

    def test_append(self):
        timeline = make_timeline(HEADER, [(0.0, '$ '), (0.75, 'l'), (0.75, 's')])

        with self.subTest(case='events keep their order'):
            self.assertEqual([e.event_data for e in timeline.events], ['$ ', 'l', 's'])
            self.assertEqual(timeline.duration, 0.75)

        with self.subTest(case='time going backward'):
            with self.assertRaises(OrderingViolation):
                timeline.append(AsciiCastV2Event(0.5, 'o', 'x'))
            self.assertEqual(len(timeline.events), 3)

    def test_merge(self):
        with self.subTest(case='no prior recording'):
            timeline = Timeline.new(FRESH_HEADER)
            self.assertEqual(timeline.merge(None), 0.0)
            self.assertEqual(timeline.header, FRESH_HEADER)
            self.assertEqual(timeline.events, [])

        with self.subTest(case='empty prior recording'):
            timeline = Timeline.new(FRESH_HEADER)
            self.assertEqual(timeline.merge(Timeline.new(HEADER)), 0.0)
            self.assertEqual(timeline.header, HEADER)

        with self.subTest(case='prior recording without end marker'):
            prior = make_timeline(HEADER, [(0.0, '$ '), (1.5, '\r\n'), (1.5, 'hi\r\n')])
            timeline = Timeline.new(FRESH_HEADER)
            self.assertEqual(timeline.merge(prior), 1.5)
            self.assertEqual(timeline.header, HEADER)
            self.assertEqual(timeline.events, prior.events)

        with self.subTest(case='end marker is dropped'):
            prior = make_timeline(HEADER, [(0.0, '$ '), (1.5, '\r\n'), (1.5, 'hi\r\n'),
                                           (3.5, '')])
            timeline = Timeline.new(FRESH_HEADER)
            self.assertEqual(timeline.merge(prior), 1.5)
            self.assertEqual([e.event_data for e in timeline.events], ['$ ', '\r\n', 'hi\r\n'])
            self.assertEqual(len(prior.events), 4)

        with self.subTest(case='only an end marker'):
            timeline = Timeline.new(FRESH_HEADER)
            self.assertEqual(timeline.merge(make_timeline(HEADER, [(2.0, '')])), 0.0)
            self.assertEqual(timeline.events, [])

        with self.subTest(case='same geometry'):
            timeline = Timeline.new(AsciiCastV2Header(2, 80, 24))
            self.assertEqual(timeline.merge(make_timeline(HEADER, [(1.0, 'x')])), 1.0)

        with self.subTest(case='different width'):
            timeline = Timeline.new(AsciiCastV2Header(2, 100, 24))
            with self.assertRaises(InvalidHeaderError):
                timeline.merge(make_timeline(HEADER, [(1.0, 'x')]))
            self.assertEqual(timeline.events, [])

        with self.subTest(case='different height'):
            timeline = Timeline.new(AsciiCastV2Header(2, 80, 50))
            with self.assertRaises(InvalidHeaderError):
                timeline.merge(make_timeline(HEADER, [(1.0, 'x')]))

    def test_is_end_marker(self):
        self.assertTrue(is_end_marker(AsciiCastV2Event(1.0, 'o', '')))
        self.assertFalse(is_end_marker(AsciiCastV2Event(1.0, 'o', ' ')))
        self.assertFalse(is_end_marker(AsciiCastV2Event(1.0, 'i', '')))

    def test_from_records(self):
        with self.subTest(case='valid records'):
            events = [AsciiCastV2Event(0.0, 'o', '$ '), AsciiCastV2Event(1.0, 'o', 'x')]
            timeline = Timeline.from_records([HEADER] + events)
            self.assertEqual(timeline.header, HEADER)
            self.assertEqual(timeline.events, events)

        failure_test_cases = [
            ('no record', [], AsciiCastError),
            ('no header', [AsciiCastV2Event(0.0, 'o', '$ ')], AsciiCastError),
            ('two headers', [HEADER, HEADER], AsciiCastError),
            ('unordered events', [HEADER, AsciiCastV2Event(1.0, 'o', 'a'),
                                  AsciiCastV2Event(0.5, 'o', 'b')], OrderingViolation),
        ]
        for case, records, exception in failure_test_cases:
            with self.subTest(case=case):
                with self.assertRaises(exception):
                    Timeline.from_records(records)

    def test_read_write(self):
        timeline = make_timeline(HEADER, [(0.0, '$ '), (0.785, 'é'), (2.5, '')])
        stream = io.StringIO()
        timeline.write(stream)
        self.assertEqual(stream.getvalue().splitlines(), [
            '{"version": 2, "width": 80, "height": 24, "env": {"SHELL": "/bin/sh", "TERM": "xterm"}}',
            '[0.0, "o", "$ "]',
            '[0.785, "o", "é"]',
            '[2.5, "o", ""]',
        ])

        stream.seek(0)
        copy = Timeline.read(stream)
        self.assertEqual(copy.header, timeline.header)
        self.assertEqual(copy.events, timeline.events)
