"""
Handles the 'status' command for displaying repository status.

This is also what runs when repostat is invoked without a subcommand:
- Table output on stdout, progress and summary on stderr
- Thin CLI layer that connects the scheduler to rendering
"""

import click

from ..config import load_config, configure_logging, get_repository_refs
from ..cli_utils import standard_command, add_common_options, STATUS_OPTIONS
from ..exit_codes import NoReposFoundError, exit_code_for_results
from ..format_utils import TABLE_FORMAT, format_output, get_format_from_env
from ..infra.git_client import GitClient
from ..progress import ProgressReporter
from ..render import print_table, print_summary
from ..services.scheduler import Scheduler


@click.command(name='status')
@add_common_options(*STATUS_OPTIONS)
@click.pass_obj
@standard_command
def status_handler(obj, no_fetch, workers, names, output_format, subject_width,
                   no_progress, verbose, progress, **kwargs):
    """Show the status of tracked repositories.

    \b
    Columns: name, changes, branch, upstream state, upstream, last commit.
      changes   + staged   * unstaged   _ untracked
      upstream  == same   >> ahead   << behind   <> diverged   -- no upstream
      !!!       the repository could not be inspected

    Examples:

    \b
        repostat                      # All tracked repositories
        repostat -F                   # Skip git fetch
        repostat -n api -n web        # Only these repositories
        repostat status -f jsonl      # Machine-readable output
    """
    config = load_config((obj or {}).get('config_path'))
    configure_logging(config, verbose)
    general = config.get('general', {})

    refs = get_repository_refs(config, names)
    if not refs:
        raise NoReposFoundError("No repositories configured; add one with 'repostat add PATH'")

    if output_format is None:
        output_format = get_format_from_env()
    if subject_width is None:
        subject_width = general.get('subject_width')

    client = GitClient(
        timeout=general.get('timeout_seconds', 30),
        fetch=bool(general.get('fetch', True)) and not no_fetch,
    )
    reporter = progress if general.get('progress', True) else ProgressReporter(enabled=False)

    scheduler = Scheduler(
        client.inspect_ref,
        concurrency=workers or general.get('workers'),
        listener=reporter.notify,
    )

    # Progress is stopped and its line cleared before anything is printed
    with reporter.track(len(refs)):
        result_set = scheduler.run(refs)

    if output_format == TABLE_FORMAT:
        print_table(result_set, subject_width=subject_width)
    else:
        for line in format_output(iter(result_set.to_dicts()), output_format):
            click.echo(line)

    print_summary(result_set)
    return exit_code_for_results(result_set)
