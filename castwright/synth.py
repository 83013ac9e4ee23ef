"""Synthesis of terminal recordings

This module turns a list of `CommandRecord` into the events of a terminal
recording. For each command, the prompt is printed, the input is typed one
keystroke at a time, then after a short pause the newline and the output of
the command are printed at once.

    $ echo hi          <- prompt, then one event per keystroke
    hi                 <- newline and output lines, all at the same time

A keystroke is not always a single character: a character followed by zero
width characters is typed at once, and escape sequences found in the input
(colors, window title...) are printed without any delay since nobody types
them. Only typed keystrokes move the clock forward.

The time elapsed since the beginning of the recording (the cursor) is passed
explicitly from one step to the next so that a recording can be continued
from any point.
"""
import logging
import random
import re
from collections import namedtuple

import wcwidth

from castwright.asciicast import AsciiCastV2Event
from castwright.sequence import DEFAULT_PROMPT, DEFAULT_TIMINGS, check_inputs
from castwright.timeline import Timeline

logger = logging.getLogger(__name__)

NEWLINE = '\r\n'
ZERO_WIDTH_JOINER = '\u200d'

# CSI sequences (colors, cursor movements...), OSC sequences (window title...)
# and two-character escape sequences
ESCAPE_SEQUENCE = re.compile(r'\x1b(?:\[[0-?]*[ -/]*[@-~]'
                             r'|\][^\x07\x1b]*(?:\x07|\x1b\\)'
                             r'|[@-Z\\-_])')

Keystroke = namedtuple('Keystroke', ['data', 'typed'])
Keystroke.__doc__ = """Unit of text displayed at once while typing a command

data: Characters displayed
typed: False for escape sequences which are displayed without being typed
"""


def keystrokes(text):
    """Split `text` into the keystrokes needed to type it

    A character followed by zero width characters (combining accents,
    variation selectors...) is a single keystroke, as is a sequence of
    characters linked by zero width joiners such as some emojis. Escape
    sequences are never split.
    """
    strokes = []
    position = 0
    while position < len(text):
        match = ESCAPE_SEQUENCE.match(text, position)
        if match:
            strokes.append(Keystroke(match.group(), False))
            position = match.end()
            continue

        char = text[position]
        position += 1
        if strokes and strokes[-1].typed:
            previous = strokes[-1].data
            if wcwidth.wcwidth(char) == 0 or previous.endswith(ZERO_WIDTH_JOINER):
                strokes[-1] = Keystroke(previous + char, True)
                continue
        strokes.append(Keystroke(char, True))

    return strokes


def display_width(text):
    """Number of columns needed to display `text`, escape sequences excluded"""
    width = 0
    for stroke in keystrokes(text):
        if stroke.typed:
            width += max(wcwidth.wcswidth(stroke.data), 0)
    return width


class Synthesizer:
    """Generate the events of a simulated terminal session

    :param timings: Delays used for the simulation (instance of Timings)
    :param prompt: Prompt displayed before commands which do not define one
    :param rng: Instance of random.Random used to vary the delay between
    keystrokes. Only used if timings.type_jitter is not zero.
    """
    def __init__(self, timings=DEFAULT_TIMINGS, prompt=DEFAULT_PROMPT, rng=None):
        self.timings = timings
        self.prompt = prompt
        self.rng = rng if rng is not None else random.Random()

    def keystroke_delay(self):
        """Return the delay between two keystrokes, before speed adjustment"""
        delay = self.timings.type_char
        if self.timings.type_jitter:
            jitter = self.timings.type_jitter
            delay += self.rng.uniform(-jitter, jitter)
        return max(delay, 0.0)

    def synthesize(self, commands, start=0.0):
        """Return the events of the session and the time it ends

        Raise EmptyInputError, before any event is generated, if one of the
        commands has nothing to type.

        :param commands: Sequence of CommandRecord
        :param start: Time of the first event in seconds
        :return: Tuple made of the list of events and of the time of the last
        event
        """
        commands = list(commands)
        check_inputs(commands)

        events = []
        time = start
        for command in commands:
            time = self._command_events(command, time, events)

        if self.timings.end:
            time += self.timings.end
            events.append(AsciiCastV2Event(time, 'o', ''))

        return events, time

    def _command_events(self, command, time, events):
        """Append the events of a single command to `events` and return the
        time at which its output is printed"""
        logger.debug('Simulating command "{}" at {:.3f}s'.format(command.input, time))
        if command.comment is not None:
            events.append(AsciiCastV2Event(time, 'o', command.comment + NEWLINE))

        prompt = self.prompt if command.prompt is None else command.prompt
        events.append(AsciiCastV2Event(time, 'o', prompt))
        time += self.timings.scaled(self.timings.type_start)

        for stroke in keystrokes(command.input):
            events.append(AsciiCastV2Event(time, 'o', stroke.data))
            if stroke.typed:
                time += self.timings.scaled(self.keystroke_delay())

        time += self.timings.scaled(self.timings.type_submit)
        events.append(AsciiCastV2Event(time, 'o', NEWLINE))
        for line in command.lines():
            events.append(AsciiCastV2Event(time, 'o', line + NEWLINE))

        return time


def synthesize(commands, header, prior=None, timings=DEFAULT_TIMINGS,
               prompt=DEFAULT_PROMPT, rng=None):
    """Return a new timeline made of the simulation of `commands`

    If `prior` is not None, the simulated session continues the recording
    `prior` whose header is reused.

    :param commands: Sequence of CommandRecord
    :param header: Header of the new recording (instance of AsciiCastV2Header)
    :param prior: Timeline to continue or None
    :param timings: Delays used for the simulation (instance of Timings)
    :param prompt: Default prompt
    :param rng: Instance of random.Random used for keystroke jitter
    """
    commands = list(commands)
    check_inputs(commands)

    timeline = Timeline.new(header)
    if prior is None:
        start = timings.begin
    else:
        start = timeline.merge(prior)
        logger.debug('Continuing recording from {:.3f}s'.format(start))

    width = timeline.header.width
    if width is not None:
        for command in commands:
            prompt_ = prompt if command.prompt is None else command.prompt
            if display_width(prompt_ + command.input) > width:
                logger.warning('Command "{}" is wider than the terminal ({} columns)'
                               .format(command.input, width))

    events, end = Synthesizer(timings, prompt, rng).synthesize(commands, start)
    timeline.extend(events)
    logger.debug('Generated {} events ending at {:.3f}s'.format(len(events), end))
    return timeline
