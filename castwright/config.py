"""Configuration of castwright

The configuration is an INI file whose [GLOBAL] section holds the default
values of the options of the command line. It is located at
$XDG_CONFIG_HOME/castwright/castwright.ini (or ~/.config/castwright/castwright.ini)
and is created from the default configuration of the package on first use.
"""
import configparser
import logging
import math
import os
import pkgutil

from castwright.sequence import Timings

logger = logging.getLogger(__name__)

PKG_CONF_PATH = 'data/castwright.ini'
CONF_DIRECTORY = 'castwright'
CONF_FILENAME = 'castwright.ini'
GLOBAL_SECTION = 'global'

STRING_OPTIONS = ('prompt', 'shell', 'term', 'title')
TIMING_OPTIONS = {
    'begin-delay': 'begin',
    'type-start': 'type_start',
    'type-char': 'type_char',
    'type-jitter': 'type_jitter',
    'type-submit': 'type_submit',
    'end-delay': 'end',
    'speed': 'speed',
}


def validate_geometry(screen_geometry):
    """Raise ValueError if 'screen_geometry' does not conform to <integer>x<integer> format"""
    try:
        columns, rows = [int(value) for value in screen_geometry.lower().split('x')]
    except ValueError:
        raise ValueError('Invalid value for screen-geometry option: "{}"'
                         .format(screen_geometry)) from None
    if columns <= 0 or rows <= 0:
        raise ValueError('Invalid value for screen-geometry option: "{}"'.format(screen_geometry))
    return columns, rows


def validate_delay(delay):
    """Raise ValueError if 'delay' is not a finite non negative number of seconds"""
    value = float(delay)
    if not math.isfinite(value) or value < 0:
        raise ValueError('delay must not be negative: {}'.format(delay))
    return value


def unquote(value):
    """Remove the quotes around a string value and interpret its backslash escapes"""
    if len(value) >= 2 and value[0] == value[-1] and value[0] in '"\'':
        value = value[1:-1]
    return value.encode('latin-1', 'backslashreplace').decode('unicode_escape')


def conf_to_dict(configuration):
    """Read the content of a configuration file and return its validated values

    The result maps option names of the [GLOBAL] section to their values,
    except for delays which are grouped in an instance of Timings under the
    key 'timings'. Missing string options are None.

    Raise ValueError if the configuration is invalid.
    """
    parser = configparser.ConfigParser(interpolation=None)
    try:
        parser.read_string(configuration)
    except configparser.Error as exc:
        raise ValueError('Invalid configuration: {}'.format(exc)) from exc

    options = {}
    for section in parser.sections():
        if section.lower() == GLOBAL_SECTION:
            options.update(parser[section])

    config_dict = {name: None for name in STRING_OPTIONS}
    config_dict['screen-geometry'] = None
    timings = {}
    for name, value in options.items():
        if name in STRING_OPTIONS:
            config_dict[name] = unquote(value)
        elif name == 'screen-geometry':
            config_dict[name] = validate_geometry(value)
        elif name in TIMING_OPTIONS:
            try:
                timings[TIMING_OPTIONS[name]] = float(value)
            except ValueError:
                raise ValueError('Invalid value for {} option: "{}"'
                                 .format(name, value)) from None
        else:
            raise ValueError('Unknown option in configuration: {}'.format(name))

    config_dict['timings'] = Timings(**timings)
    return config_dict


def default_configuration():
    return pkgutil.get_data(__name__, PKG_CONF_PATH).decode('utf-8')


def configuration_path(environ):
    """Return the path of the user configuration file or None if it can't be
    determined from the environment"""
    if environ.get('XDG_CONFIG_HOME'):
        config_home = environ['XDG_CONFIG_HOME']
    elif environ.get('HOME'):
        config_home = os.path.join(environ['HOME'], '.config')
    else:
        return None
    return os.path.join(config_home, CONF_DIRECTORY, CONF_FILENAME)


def init_read_conf():
    """Return the user configuration, creating it from the default
    configuration of the package if needed"""
    default_config = default_configuration()
    config_path = configuration_path(os.environ)
    if config_path is None:
        logger.debug('No configuration directory, using default configuration')
        return conf_to_dict(default_config)

    try:
        with open(config_path, 'r', encoding='utf-8') as config_file:
            configuration = config_file.read()
    except FileNotFoundError:
        os.makedirs(os.path.dirname(config_path), exist_ok=True)
        with open(config_path, 'w', encoding='utf-8') as config_file:
            config_file.write(default_config)
        logger.info('Created configuration file {}'.format(config_path))
        configuration = default_config

    try:
        return conf_to_dict(configuration)
    except ValueError as exc:
        raise ValueError('{}: {}'.format(config_path, exc)) from exc
