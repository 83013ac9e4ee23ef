"""In-memory terminal recording

A `Timeline` is made of an asciicast v2 header and of the ordered list of
events of the recording. Events are only ever added at the tail of the
timeline and their times never decrease.
"""
import logging

from castwright.asciicast import AsciiCastError, AsciiCastV2Event, AsciiCastV2Header, \
    read_records

logger = logging.getLogger(__name__)


class TimelineError(Exception):
    pass


class OrderingViolation(TimelineError):
    pass


class InvalidHeaderError(TimelineError):
    pass


def is_end_marker(event):
    """Return True if the event marks the end of a session (no data printed)"""
    return event.event_type == 'o' and event.event_data == ''


class Timeline:
    """Header and events of a terminal recording"""
    def __init__(self, header):
        self.header = header
        self.events = []

    @classmethod
    def new(cls, header):
        return cls(header)

    @classmethod
    def from_records(cls, records):
        """Build a timeline from a sequence of asciicast v2 records

        The first record must be the header, all others must be events."""
        records = iter(records)
        try:
            header = next(records)
        except StopIteration:
            raise AsciiCastError('Empty recording') from None
        if not isinstance(header, AsciiCastV2Header):
            raise AsciiCastError('The first record of a recording must be its header')

        timeline = cls(header)
        for record in records:
            if not isinstance(record, AsciiCastV2Event):
                raise AsciiCastError('Unexpected header in the middle of the recording')
            timeline.append(record)
        return timeline

    @classmethod
    def read(cls, source):
        """Read a recording from a file name or a text stream"""
        return cls.from_records(read_records(source))

    @property
    def duration(self):
        if not self.events:
            return 0.0
        return self.events[-1].time

    def append(self, event):
        if self.events and event.time < self.events[-1].time:
            raise OrderingViolation('Event at {}s appended after event at {}s'
                                    .format(event.time, self.events[-1].time))
        self.events.append(event)

    def extend(self, events):
        for event in events:
            self.append(event)

    def merge(self, prior):
        """Continue the recording `prior` and return the time where it ends

        The events of `prior` become the beginning of this timeline and its
        header replaces the one of this timeline so that both recordings read
        as a single session. A session end marker closing `prior` is dropped:
        new events take its place instead of following it.

        Raise InvalidHeaderError if the terminal geometries of both headers
        are known and differ.
        """
        if prior is None:
            return 0.0

        for name in ('width', 'height'):
            ours, theirs = getattr(self.header, name), getattr(prior.header, name)
            if ours is not None and theirs is not None and ours != theirs:
                raise InvalidHeaderError('Terminal {} differs from the recording to '
                                         'continue ({} != {})'.format(name, ours, theirs))

        events = list(prior.events)
        if events and is_end_marker(events[-1]):
            logger.debug('Dropping session end marker at {}s'.format(events[-1].time))
            events.pop()

        self.header = prior.header
        self.events = []
        self.extend(events)
        return self.duration

    def records(self):
        yield self.header
        yield from self.events

    def write(self, stream):
        for record in self.records():
            print(record.to_json_line(), file=stream)
