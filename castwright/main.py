"""Command line interface of castwright"""

import argparse
import logging
import math
import os
import random
import sys
import tempfile
import time

import castwright.config
from castwright import sequence, synth, term
from castwright.asciicast import AsciiCastError, AsciiCastV2Header
from castwright.timeline import Timeline, TimelineError

logger = logging.getLogger('castwright')

STDIN = '-'
OUTPUT_FORMATS = ('asciicast',) + sequence.FORMATS

USAGE = """castwright [INPUT OUTPUT ...] [-f SEQUENCE] [-c CAST] [-i]
                  [-o OUTPUT_FILE] [-O FORMAT] [-p PROMPT] [-g GEOMETRY]
                  [-S SHELL] [-T TERM] [--title TITLE] [-b SECS] [-e SECS]
                  [--type-start SECS] [--type-char SECS] [--type-jitter SECS]
                  [--type-submit SECS] [-s FACTOR] [--seed SEED]
                  [--no-timestamp] [-v] [-h]

Create a terminal recording in asciicast v2 format from commands and their
output, without running them
"""
EPILOG = """Recordings can be chained: castwright 'ls' 'a.txt' | castwright -c - 'pwd' '/home'"""


def speed_validation(speed):
    value = float(speed)
    if not math.isfinite(value) or value <= 0:
        raise ValueError('speed must be a finite number greater than 0')
    return value


def parse(args, configuration):
    """Parse command line arguments

    :param args: Arguments to parse
    :param configuration: Configuration as returned by config.conf_to_dict.
    Its values are displayed as defaults but options missing from the command
    line are parsed as None so that sequence files may override them.
    :return: Parsed arguments
    """
    timings = configuration['timings']

    input_parser = argparse.ArgumentParser(add_help=False)
    input_parser.add_argument(
        'commands',
        nargs='*',
        help='commands to simulate given as pairs of an input typed at the '
             'prompt and of the output it prints. Outputs spanning several '
             'lines are printed line by line.',
        metavar='INPUT OUTPUT'
    )
    input_parser.add_argument(
        '-f', '--from-file',
        help='read commands, timings and prompt from a sequence file in JSON '
             'format ("-" for standard input). Commands of the file are '
             'simulated before those of the command line.',
        metavar='SEQUENCE'
    )
    input_parser.add_argument(
        '-c', '--continue',
        dest='continue_from',
        help='continue the recording CAST in asciicast v1 or v2 format ("-" '
             'for standard input) instead of starting a new one',
        metavar='CAST'
    )
    input_parser.add_argument(
        '-i', '--interactive',
        action='store_true',
        help='enter commands and their output interactively'
    )

    output_parser = argparse.ArgumentParser(add_help=False)
    output_parser.add_argument(
        '-o', '--output-file',
        help='write the result to OUTPUT_FILE instead of the standard output'
    )
    output_parser.add_argument(
        '-O', '--output-format',
        choices=OUTPUT_FORMATS,
        default='asciicast',
        help='format of the result (default: asciicast). The sequence and '
             'termsheets formats list the commands instead of the recording.',
        metavar='FORMAT'
    )

    header_parser = argparse.ArgumentParser(add_help=False)
    header_parser.add_argument(
        '-p', '--prompt',
        help='prompt displayed before each command (default: {!r})'
             .format(configuration['prompt'] or sequence.DEFAULT_PROMPT).replace('%', '%%'),
        metavar='PROMPT'
    )
    header_parser.add_argument(
        '-g', '--screen-geometry',
        help='geometry of the terminal screen given as the number of columns '
             'and the number of rows separated by the character "x", for '
             'example "82x19" (default: size of the current terminal)',
        type=castwright.config.validate_geometry,
        metavar='GEOMETRY'
    )
    header_parser.add_argument(
        '-S', '--shell',
        help='value of the SHELL variable of the recording',
    )
    header_parser.add_argument(
        '-T', '--term',
        help='value of the TERM variable of the recording',
    )
    header_parser.add_argument(
        '--title',
        help='title of the recording',
    )
    header_parser.add_argument(
        '--no-timestamp',
        action='store_true',
        help='do not store the creation time in the header of the recording'
    )

    timings_parser = argparse.ArgumentParser(add_help=False)
    timings_options = [
        (('-b', '--begin-delay'), 'begin', 'pause before the first prompt'),
        (('-e', '--end-delay'), 'end', 'pause after the last output, 0 to end '
                                       'the recording on the last output'),
        (('--type-start',), 'type_start', 'pause between the prompt and the '
                                          'first keystroke'),
        (('--type-char',), 'type_char', 'delay between two keystrokes'),
        (('--type-jitter',), 'type_jitter', 'maximal random variation of the '
                                            'delay between two keystrokes'),
        (('--type-submit',), 'type_submit', 'pause between the last keystroke '
                                            'and the output'),
    ]
    for flags, name, description in timings_options:
        timings_parser.add_argument(
            *flags,
            dest=name,
            type=castwright.config.validate_delay,
            metavar='SECS',
            help='{} in seconds (default: {})'.format(description, getattr(timings, name))
        )
    timings_parser.add_argument(
        '-s', '--speed',
        type=speed_validation,
        metavar='FACTOR',
        help='divide the typing delays (--type-start, --type-char and '
             '--type-submit) by FACTOR. Begin and end delays are not '
             'affected. (default: {})'.format(timings.speed)
    )
    timings_parser.add_argument(
        '--seed',
        type=int,
        help='seed of the random variation of the delay between keystrokes'
    )

    verbose_parser = argparse.ArgumentParser(add_help=False)
    verbose_parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='increase log messages verbosity'
    )

    parser = argparse.ArgumentParser(
        prog='castwright',
        parents=[input_parser, output_parser, header_parser, timings_parser,
                 verbose_parser],
        usage=USAGE,
        epilog=EPILOG
    )
    # Inputs and outputs may be given before or after options
    return parser.parse_intermixed_args(args)


def first_defined(*values):
    for value in values:
        if value is not None:
            return value
    return None


def merge_timings(args, sequence_timings, config_timings):
    """Return the timings set on the command line, in the sequence file or in
    the configuration, in that order of precedence"""
    attributes = first_defined(sequence_timings, config_timings)._asdict()
    for name in sequence.Timings._fields:
        value = getattr(args, name, None)
        if value is not None:
            attributes[name] = value
    return sequence.Timings(**attributes)


def output_geometry(stream):
    """Return the size of the terminal attached to `stream` or the default
    size if there is none"""
    try:
        fileno = stream.fileno()
    except (OSError, ValueError):
        return term.DEFAULT_COLUMNS, term.DEFAULT_LINES
    return term.get_terminal_size(fileno)


def read_commands(args, input_stream):
    """Return the commands to simulate along with the timings and the prompt
    of the sequence file"""
    stdin_readers = [name for name, used in (('--from-file', args.from_file == STDIN),
                                             ('--continue', args.continue_from == STDIN),
                                             ('--interactive', args.interactive))
                     if used]
    if len(stdin_readers) > 1:
        raise ValueError('Options {} can not all read the standard input'
                         .format(', '.join(stdin_readers)))

    if args.from_file is None:
        sequence_file = sequence.Sequence([], None, None)
    elif args.from_file == STDIN:
        sequence_file = sequence.load(input_stream)
    else:
        sequence_file = sequence.load(args.from_file)

    commands = list(sequence_file.commands)
    commands.extend(sequence.from_arguments(args.commands))
    return commands, sequence_file.timings, sequence_file.prompt


def write_result(args, write, output_stream):
    """Call `write` with the stream where the result must be written"""
    if args.output_file is None:
        write(output_stream)
        output_stream.flush()
    else:
        with open(args.output_file, 'w', encoding='utf-8') as output_file:
            write(output_file)
        logger.info('Result written to {}'.format(args.output_file))


def run(args, configuration, input_stream, output_stream, prompt_stream):
    if args.output_format != 'asciicast' and args.continue_from is not None:
        raise ValueError('Option --continue can not be used with the {} output format'
                         .format(args.output_format))

    commands, sequence_timings, sequence_prompt = read_commands(args, input_stream)
    prompt = first_defined(args.prompt, sequence_prompt, configuration['prompt'],
                           sequence.DEFAULT_PROMPT)
    timings = merge_timings(args, sequence_timings, configuration['timings'])

    if args.continue_from is None:
        prior = None
    elif args.continue_from == STDIN:
        prior = Timeline.read(input_stream)
    else:
        prior = Timeline.read(args.continue_from)

    if args.interactive:
        commands.extend(term.prompt_commands(prompt, input_stream, prompt_stream))

    if not commands:
        raise ValueError('No command to simulate')
    sequence.check_inputs(commands)

    if args.output_format != 'asciicast':
        result = sequence.Sequence(commands, timings, prompt)
        write_result(args, lambda stream: print(sequence.dumps(result, args.output_format),
                                                file=stream),
                     output_stream)
        return

    geometry = first_defined(args.screen_geometry, configuration['screen-geometry'])
    columns, lines = geometry if geometry is not None else (None, None)
    header = AsciiCastV2Header(
        version=2,
        width=columns,
        height=lines,
        timestamp=None if args.no_timestamp else int(time.time()),
        title=first_defined(args.title, configuration['title']),
        env=term.environment(os.environ,
                             first_defined(args.shell, configuration['shell']),
                             first_defined(args.term, configuration['term']))
    )

    timeline = synth.synthesize(commands, header, prior, timings, prompt,
                                random.Random(args.seed))
    if timeline.header.width is None:
        timeline.header = timeline.header.with_geometry(*output_geometry(output_stream))

    write_result(args, timeline.write, output_stream)
    logger.debug('Recording of {} commands lasts {:.3f}s'
                 .format(len(commands), timeline.duration))


def main(args=None, input_stream=None, output_stream=None, prompt_stream=None):
    """Run castwright and return its exit status"""
    if args is None:
        args = sys.argv
    if input_stream is None:
        input_stream = sys.stdin
    if output_stream is None:
        output_stream = sys.stdout
    if prompt_stream is None:
        prompt_stream = sys.stderr

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging.INFO)
    console_formatter = logging.Formatter('%(message)s')
    console_handler.setFormatter(console_formatter)
    logger.handlers = [console_handler]
    logger.setLevel(logging.DEBUG)

    try:
        configuration = castwright.config.init_read_conf()
    except ValueError as exc:
        logger.error('Invalid configuration: {}'.format(exc))
        return 1

    args = parse(args[1:], configuration)

    if args.verbose:
        _, log_filename = tempfile.mkstemp(prefix='castwright_', suffix='.log')
        file_handler = logging.FileHandler(filename=log_filename, mode='w')
        file_handler.setLevel(logging.DEBUG)
        file_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        file_handler.setFormatter(file_formatter)
        logger.handlers.append(file_handler)
        logger.info('Logging to {}'.format(log_filename))

    try:
        run(args, configuration, input_stream, output_stream, prompt_stream)
        status = 0
    except (AsciiCastError, sequence.SequenceError, TimelineError, ValueError, OSError) as exc:
        logger.error('Error: {}'.format(exc))
        status = 1

    for handler in logger.handlers:
        handler.close()
    return status
