"""asciicast records

This module provides the classes used to read and write terminal recordings in
the asciicast format. Recordings in v1 and v2 format can be decoded, but only
the v2 format is produced. Both formats are described here:
    [1] https://github.com/asciinema/asciinema/blob/develop/doc/asciicast-v1.md
    [2] https://github.com/asciinema/asciinema/blob/develop/doc/asciicast-v2.md
"""
import abc
import json
import math
from collections import namedtuple
from typing import Iterable

# Number of decimal places kept for event times when writing a recording
TIME_PRECISION = 6


class AsciiCastError(Exception):
    pass


class AsciiCastV2Record(abc.ABC):
    """Generic Asciicast v2 record format"""
    @abc.abstractmethod
    def to_json_line(self):
        raise NotImplementedError

    @classmethod
    def from_json_line(cls, line):
        """Raise AsciiCastError if line is not a valid asciicast v2 record"""
        try:
            json_value = json.loads(line)
        except json.JSONDecodeError as exc:
            raise AsciiCastError('Invalid JSON: {}'.format(exc)) from exc
        if isinstance(json_value, dict):
            return AsciiCastV2Header.from_json_line(line)
        if isinstance(json_value, list):
            return AsciiCastV2Event.from_json_line(line)
        truncated_line = line if len(line) < 20 else '{}...'.format(line[:20])
        raise AsciiCastError('Unknown record type: "{}"'.format(truncated_line))


def _check_geometry(attributes):
    for name in ('width', 'height'):
        if not isinstance(attributes.get(name), int):
            raise AsciiCastError('Invalid or missing attribute {}: {}'
                                 .format(name, attributes.get(name)))


def _check_types(record, types):
    for attr_name in record._fields:
        attr = getattr(record, attr_name)
        if not isinstance(attr, types[attr_name]):
            raise AsciiCastError('Invalid type for attribute {}: {} (expected one of {})'
                                 .format(attr_name, type(attr), types[attr_name]))


_AsciiCastV2Theme = namedtuple('AsciiCastV2Theme', ['fg', 'bg', 'palette'])


class AsciiCastV2Theme(_AsciiCastV2Theme):
    """Color theme of the terminal.

    All colors must use the '#rrggbb' format

    fg: default text color
    bg: default background colors
    palette: colon separated list of 8 or 16 terminal colors
    """
    def __new__(cls, fg, bg, palette):
        if not cls.is_color(fg):
            raise AsciiCastError('Invalid foreground color: {}'.format(fg))
        if not cls.is_color(bg):
            raise AsciiCastError('Invalid background color: {}'.format(bg))
        if not isinstance(palette, str):
            raise AsciiCastError('Invalid palette: {}'.format(palette))

        colors = palette.split(':')
        for count in (16, 8):
            if len(colors) >= count and all(cls.is_color(c) for c in colors[:count]):
                return super().__new__(cls, fg, bg, ':'.join(colors[:count]))
        raise AsciiCastError('Invalid palette: the first 8 or 16 colors must be valid')

    @staticmethod
    def is_color(color):
        if isinstance(color, str) and len(color) == 7 and color[0] == '#':
            try:
                int(color[1:], 16)
            except ValueError:
                return False
            return True
        return False


_AsciiCastV2Header = namedtuple('AsciiCastV2Header', ['version', 'width', 'height',
                                                      'timestamp', 'idle_time_limit',
                                                      'title', 'env', 'theme'])


class AsciiCastV2Header(AsciiCastV2Record, _AsciiCastV2Header):
    """Header record

    version: Version of the asciicast file format
    width: Initial number of columns of the terminal (None until known)
    height: Initial number of lines of the terminal (None until known)
    timestamp: Unix timestamp of the beginning of the recording
    idle_time_limit: Maximum pause between two events when replaying
    title: Title of the recording
    env: Mapping of environment variables (SHELL and TERM)
    theme: Color theme of the terminal
    """
    types = {
        'version': int,
        'width': (type(None), int),
        'height': (type(None), int),
        'timestamp': (type(None), int),
        'idle_time_limit': (type(None), int, float),
        'title': (type(None), str),
        'env': (type(None), dict),
        'theme': (type(None), AsciiCastV2Theme),
    }

    def __new__(cls, version, width=None, height=None, timestamp=None,
                idle_time_limit=None, title=None, env=None, theme=None):
        self = super(AsciiCastV2Header, cls).__new__(cls, version, width, height, timestamp,
                                                     idle_time_limit, title, env, theme)
        _check_types(self, cls.types)
        if version != 2:
            raise AsciiCastError('Only asciicast v2 format is supported')
        for size in (width, height):
            if size is not None and size <= 0:
                raise AsciiCastError('Invalid terminal geometry: {}x{}'.format(width, height))
        if env is not None and not all(isinstance(value, str) for value in env.values()):
            raise AsciiCastError('Invalid environment: {}'.format(env))
        return self

    def with_geometry(self, width, height):
        """Return a copy of the header with the terminal geometry replaced"""
        attributes = self._asdict()
        attributes.update(width=width, height=height)
        return AsciiCastV2Header(**attributes)

    def to_json_line(self):
        if self.width is None or self.height is None:
            raise AsciiCastError('Terminal geometry must be known to write the header')

        attributes = self._asdict()
        if self.theme is not None:
            attributes['theme'] = self.theme._asdict()
        for name in ('timestamp', 'idle_time_limit', 'title', 'env', 'theme'):
            if attributes[name] is None:
                del attributes[name]

        return json.dumps(attributes, ensure_ascii=False)

    @classmethod
    def from_json_line(cls, line):
        attributes = json.loads(line)
        filtered_attributes = {attr: attributes.get(attr) for attr in AsciiCastV2Header._fields}
        _check_geometry(filtered_attributes)
        if isinstance(filtered_attributes['theme'], dict):
            try:
                filtered_attributes['theme'] = AsciiCastV2Theme(**filtered_attributes['theme'])
            except TypeError as exc:
                raise AsciiCastError('Invalid theme: {}'.format(exc)) from exc

        return cls(**filtered_attributes)


_AsciiCastV2Event = namedtuple('AsciiCastV2Event', ['time', 'event_type', 'event_data'])


class AsciiCastV2Event(AsciiCastV2Record, _AsciiCastV2Event):
    """Event record

    time: Time elapsed since the beginning of the recording in seconds
    event_type: Type 'o' if the data was printed on the standard output of the terminal, type
                'i' if it was typed on the standard input
    event_data: Data printed or typed
    """
    types = {
        'time': (int, float),
        'event_type': (str,),
        'event_data': (str,),
    }

    def __new__(cls, time, event_type, event_data):
        self = super(AsciiCastV2Event, cls).__new__(cls, time, event_type, event_data)
        _check_types(self, cls.types)
        if not math.isfinite(time) or time < 0:
            raise AsciiCastError('Invalid event time: {}'.format(time))
        return self

    def to_json_line(self):
        attributes = [round(self.time, TIME_PRECISION), self.event_type, self.event_data]
        return json.dumps(attributes, ensure_ascii=False)

    @classmethod
    def from_json_line(cls, line):
        try:
            time, event_type, event_data = json.loads(line)
        except (json.JSONDecodeError, ValueError) as exc:
            raise AsciiCastError('Invalid event: {}'.format(line.strip())) from exc

        return cls(time, event_type, event_data)


def _read_v1_records(data):
    v1_header_attributes = {
        'version',
        'width',
        'height',
        'stdout'
    }
    try:
        json_dict = json.loads(data)
    except json.JSONDecodeError as exc:
        raise AsciiCastError from exc
    if not isinstance(json_dict, dict):
        raise AsciiCastError('Invalid asciicast v1 document')
    missing_attributes = v1_header_attributes - set(json_dict)
    if missing_attributes:
        raise AsciiCastError('Missing attributes in asciicast v1 file: {}'
                             .format(missing_attributes))

    if json_dict['version'] != 1:
        raise AsciiCastError('This function can only decode asciicast v1 data')
    _check_geometry(json_dict)

    yield AsciiCastV2Header(2, json_dict['width'], json_dict['height'],
                            title=json_dict.get('title') or None,
                            env=json_dict.get('env') or None)

    if not isinstance(json_dict['stdout'], Iterable):
        raise AsciiCastError('Invalid type for stdout attribute (expected Iterable): {}'
                             .format(json_dict['stdout']))

    # v1 stores the delay since the previous event instead of an absolute time
    time = 0
    for event in json_dict['stdout']:
        try:
            time_elapsed, event_data = event
        except (TypeError, ValueError) as exc:
            raise AsciiCastError from exc

        if not isinstance(time_elapsed, (int, float)) or not isinstance(event_data, str):
            raise AsciiCastError('Invalid type for event: got object "{}" but expected '
                                 'type Tuple[Union[int, float], str]'.format(event))
        time += time_elapsed
        yield AsciiCastV2Event(time, 'o', event_data)


def _is_v1_document(data):
    try:
        json_value = json.loads(data)
    except json.JSONDecodeError:
        return False
    return isinstance(json_value, dict) and json_value.get('version') == 1


def parse_records(data):
    """Return the list of asciicast v2 records found in `data`

    `data` may hold a recording in either asciicast v1 or v2 format. Records
    of a v1 recording are converted to their v2 equivalent.
    Raise AsciiCastError if a record is invalid"""
    if _is_v1_document(data):
        return list(_read_v1_records(data))

    return [AsciiCastV2Record.from_json_line(line)
            for line in data.splitlines() if line.strip()]


def read_records(source):
    """Return asciicast v2 records read from `source`

    `source` is either the name of a file or a text stream such as sys.stdin"""
    if isinstance(source, str):
        with open(source, 'r', encoding='utf-8') as cast_file:
            data = cast_file.read()
    else:
        data = source.read()
    return parse_records(data)
