"""
Common CLI utilities and decorators for consistent command behavior.
"""

import sys
import click
from functools import wraps
from .progress import get_progress
from .exit_codes import (
    SUCCESS, INTERRUPTED,
    get_exit_code_for_exception, CommandError
)
from .format_utils import ALL_FORMATS


def standard_command(func):
    """
    Decorator that provides standard CLI behavior:
    - Progress reporter injected as the ``progress`` keyword
    - Progress and errors on stderr, data on stdout
    - Consistent error handling and exit codes

    The command may return an int exit code; None means success.
    """
    @wraps(func)
    def wrapper(*args, **kwargs):
        # Initialize progress reporter
        progress = get_progress(enabled=False if kwargs.get('no_progress') else None)

        # Inject progress into kwargs
        kwargs['progress'] = progress

        try:
            # Call the actual command
            result = func(*args, **kwargs)
        except KeyboardInterrupt:
            progress.stop()
            progress.error("Interrupted by user")
            sys.exit(INTERRUPTED)
        except click.ClickException:
            # Click exceptions already have their exit code
            raise
        except CommandError as e:
            # Our custom command errors with specific exit codes
            progress.stop()
            progress.error(str(e))
            sys.exit(e.exit_code)
        except Exception as e:
            progress.stop()
            progress.error(f"Command failed: {e}")
            sys.exit(get_exit_code_for_exception(e))

        sys.exit(result if isinstance(result, int) else SUCCESS)

    return wrapper


# Standard options that many commands share
common_options = {
    'verbose': click.option('-v', '--verbose', is_flag=True,
                           help='Enable debug logging on stderr'),
    'no_progress': click.option('--no-progress', is_flag=True,
                               help='Suppress progress output'),
    'no_fetch': click.option('-F', '--no-fetch', is_flag=True,
                            help='Do not fetch before inspecting'),
    'workers': click.option('-w', '--workers', type=click.IntRange(min=1),
                           help='Number of parallel workers (default: from config, or CPU count)'),
    'names': click.option('-n', '--name', 'names', multiple=True,
                         help='Only show this repository (repeatable)'),
    'format': click.option('-f', '--format', 'output_format',
                          type=click.Choice(ALL_FORMATS),
                          help='Output format (default: table, or from REPOSTAT_FORMAT env)'),
    'subject_width': click.option('--subject-width', type=click.IntRange(min=0),
                                 help='Truncate commit subjects to this width (0 = never)'),
}

STATUS_OPTIONS = ('no_fetch', 'workers', 'names', 'format', 'subject_width', 'no_progress', 'verbose')


def add_common_options(*option_names):
    """
    Decorator to add common options to a command.

    Example:
        @add_common_options('verbose', 'no_progress')
        def my_command(verbose, no_progress):
            ...
    """
    def decorator(func):
        for name in reversed(option_names):
            if name in common_options:
                func = common_options[name](func)
        return func
    return decorator
