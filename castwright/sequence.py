"""Sequences of commands to simulate

A sequence is an ordered list of `CommandRecord` together with the timings
and the prompt used to simulate them. Sequences are stored as JSON documents:

    {
        "version": 1,
        "prompt": "$ ",
        "timings": {"type_start": 0.75, "type_char": 0.035, ...},
        "commands": [
            {"input": "echo hi", "outputs": ["hi"]},
            {"input": "ls", "outputs": ["a.txt", "b.txt"], "comment": "# files"}
        ]
    }

A bare JSON array of commands is also accepted. In that case each command
may use the key "output" (a string or a list of strings) as TermSheets
documents do.
"""
import json
import math
from collections import namedtuple

VERSION = 1
DEFAULT_PROMPT = '$ '
FORMATS = ('sequence', 'termsheets')


class SequenceError(Exception):
    pass


class EmptyInputError(SequenceError):
    pass


_CommandRecord = namedtuple('CommandRecord', ['input', 'outputs', 'prompt', 'comment'])


class CommandRecord(_CommandRecord):
    """A command typed in the terminal and the lines it prints

    input: Text typed after the prompt
    outputs: Text printed by the command, each string holding one or more lines
    prompt: Prompt displayed before the command (None for the default prompt)
    comment: Line printed before the prompt (None for no comment)
    """
    def __new__(cls, input, outputs=(), prompt=None, comment=None):
        if isinstance(outputs, str):
            outputs = (outputs,)
        try:
            outputs = tuple(outputs)
        except TypeError as exc:
            raise SequenceError('Invalid outputs: {}'.format(outputs)) from exc

        if not isinstance(input, str):
            raise SequenceError('Invalid input: {}'.format(input))
        if not all(isinstance(output, str) for output in outputs):
            raise SequenceError('Invalid outputs: {}'.format(outputs))
        for name, value in (('prompt', prompt), ('comment', comment)):
            if value is not None and not isinstance(value, str):
                raise SequenceError('Invalid {}: {}'.format(name, value))

        return super().__new__(cls, input, outputs, prompt, comment)

    def lines(self):
        """Return the lines printed by the command, without line terminators"""
        return [line for output in self.outputs for line in output.splitlines()]

    def to_dict(self):
        attributes = {'input': self.input, 'outputs': list(self.outputs)}
        if self.prompt is not None:
            attributes['prompt'] = self.prompt
        if self.comment is not None:
            attributes['comment'] = self.comment
        return attributes

    @classmethod
    def from_dict(cls, attributes):
        if not isinstance(attributes, dict):
            raise SequenceError('Invalid command: {}'.format(attributes))
        if 'input' not in attributes:
            raise SequenceError('Missing input in command: {}'.format(attributes))
        outputs = attributes.get('outputs', attributes.get('output', ()))
        if outputs is None:
            outputs = ()
        return cls(attributes['input'], outputs,
                   attributes.get('prompt'), attributes.get('comment'))


def check_inputs(commands):
    """Raise EmptyInputError if a command has nothing to type"""
    for index, command in enumerate(commands):
        if not command.input:
            raise EmptyInputError('Command #{} has an empty input'.format(index + 1))


_Timings = namedtuple('Timings', ['begin', 'type_start', 'type_char', 'type_jitter',
                                  'type_submit', 'end', 'speed'])


class Timings(_Timings):
    """Delays used to simulate a terminal session

    All delays are expressed in seconds.

    begin: Delay before the first prompt of a new recording
    type_start: Pause between the display of the prompt and the first keystroke
    type_char: Delay between two keystrokes
    type_jitter: Maximal random variation of the delay between two keystrokes
    type_submit: Pause between the last keystroke and the output of the command
    end: Delay between the last output and the end of the recording
    speed: Factor by which typing delays (type_start, type_char and type_submit)
           are divided
    """
    def __new__(cls, begin=0.0, type_start=0.75, type_char=0.035, type_jitter=0.0,
                type_submit=0.885, end=2.0, speed=1.0):
        self = super().__new__(cls, begin, type_start, type_char, type_jitter,
                               type_submit, end, speed)
        for name, value in self._asdict().items():
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError('Invalid type for timing {}: {}'.format(name, type(value)))
            if not math.isfinite(value) or value < 0:
                raise ValueError('Timing {} must be finite and not negative: {}'
                                 .format(name, value))
        if speed == 0:
            raise ValueError('Speed must be greater than 0')
        return self

    def scaled(self, delay):
        """Return the duration of `delay` once the speed factor is applied"""
        return delay / self.speed

    @classmethod
    def from_dict(cls, attributes):
        if not isinstance(attributes, dict):
            raise SequenceError('Invalid timings: {}'.format(attributes))
        unknown = set(attributes) - set(cls._fields)
        if unknown:
            raise SequenceError('Unknown timings: {}'.format(', '.join(sorted(unknown))))
        try:
            return cls(**attributes)
        except ValueError as exc:
            raise SequenceError(str(exc)) from exc


DEFAULT_TIMINGS = Timings()

Sequence = namedtuple('Sequence', ['commands', 'timings', 'prompt'])
Sequence.__doc__ = """Commands to simulate along with the timings and prompt used"""


def from_arguments(arguments):
    """Return the commands described by a list of (input, output) pairs

    A trailing input without output prints nothing. An empty output prints
    nothing either."""
    commands = []
    for index in range(0, len(arguments), 2):
        input_ = arguments[index]
        output = arguments[index + 1] if index + 1 < len(arguments) else ''
        commands.append(CommandRecord(input_, [output] if output else []))
    return commands


def loads(data):
    """Parse a sequence document

    Timings and prompt missing from the document are None in the result."""
    try:
        document = json.loads(data)
    except json.JSONDecodeError as exc:
        raise SequenceError('Invalid JSON: {}'.format(exc)) from exc

    if isinstance(document, list):
        return Sequence([CommandRecord.from_dict(c) for c in document], None, None)

    if not isinstance(document, dict):
        raise SequenceError('A sequence must be a JSON object or array')
    version = document.get('version', VERSION)
    if version != VERSION:
        raise SequenceError('Unsupported sequence version: {}'.format(version))
    commands = document.get('commands', [])
    if not isinstance(commands, list):
        raise SequenceError('Invalid commands: {}'.format(commands))

    timings = document.get('timings')
    if timings is not None:
        timings = Timings.from_dict(timings)
    prompt = document.get('prompt')
    if prompt is not None and not isinstance(prompt, str):
        raise SequenceError('Invalid prompt: {}'.format(prompt))

    return Sequence([CommandRecord.from_dict(c) for c in commands], timings, prompt)


def load(source):
    """Read a sequence document from a file name or a text stream"""
    if isinstance(source, str):
        with open(source, 'r', encoding='utf-8') as sequence_file:
            return loads(sequence_file.read())
    return loads(source.read())


def dumps(sequence, output_format='sequence'):
    """Serialize a sequence either as a sequence document or as a TermSheets
    document"""
    if output_format == 'termsheets':
        document = [{'input': c.input, 'output': c.lines()} for c in sequence.commands]
    elif output_format == 'sequence':
        document = {'version': VERSION}
        if sequence.prompt is not None:
            document['prompt'] = sequence.prompt
        if sequence.timings is not None:
            document['timings'] = sequence.timings._asdict()
        document['commands'] = [c.to_dict() for c in sequence.commands]
    else:
        raise ValueError('Unknown sequence format: {}'.format(output_format))

    return json.dumps(document, ensure_ascii=False)
