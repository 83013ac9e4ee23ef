"""Terminal and environment of the simulated session

This module discovers the properties of the terminal recorded in the header
of a recording and lets the user enter the commands to simulate
interactively.
"""
import os

from castwright.sequence import CommandRecord

DEFAULT_COLUMNS = 80
DEFAULT_LINES = 24
DEFAULT_SHELL = '/bin/bash'
DEFAULT_TERM = 'xterm-256color'


def get_terminal_size(fileno):
    try:
        columns, lines = os.get_terminal_size(fileno)
    except OSError:
        columns, lines = DEFAULT_COLUMNS, DEFAULT_LINES

    return columns, lines


def environment(environ, shell=None, term=None):
    """Return the SHELL and TERM variables stored in the header of a recording

    Explicit values take precedence over those of `environ`."""
    return {
        'SHELL': shell or environ.get('SHELL') or DEFAULT_SHELL,
        'TERM': term or environ.get('TERM') or DEFAULT_TERM,
    }


def prompt_commands(prompt, input_stream, output_stream):
    """Read commands and their output from `input_stream`

    For each command, `prompt` is written to `output_stream` and the input is
    read on a single line. Output lines follow until an empty line. An empty
    input or the end of `input_stream` terminates the session.
    """
    commands = []
    while True:
        output_stream.write(prompt)
        output_stream.flush()
        input_line = input_stream.readline()
        input_ = input_line.rstrip('\r\n')
        if not input_:
            break

        outputs = []
        while True:
            output_stream.write('> ')
            output_stream.flush()
            line = input_stream.readline()
            if not line.rstrip('\r\n'):
                break
            outputs.append(line.rstrip('\r\n'))

        commands.append(CommandRecord(input_, outputs))
        if not line:
            break

    output_stream.write('\n')
    output_stream.flush()
    return commands
