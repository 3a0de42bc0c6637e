from __future__ import annotations

import argparse
import logging
import os
import signal
import sys

from gitwatch import __version__
from gitwatch import git as git_mod
from gitwatch.config import (
    DEFAULT_COMMIT_MSG,
    DEFAULT_DATE_FMT,
    DEFAULT_EVENTS,
    DEFAULT_SLEEP_TIME,
    ConfigError,
    DiffSummaryPolicy,
    WatchConfig,
    git_bin_from_env,
    parse_events,
)
from gitwatch.watcher import WatcherStoppedError, WatchSession


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

DESCRIPTION = "Watch a file or directory and git commit all changes as they happen."

EPILOG = """\
The target must be inside a Git repository. The remote, branch and HEAD
state are only read once at launch; changing the repository configuration
while gitwatch runs leads to undefined behaviour.

Set GW_GIT_BIN to use a git binary other than the one found in PATH.
"""


def _die(msg: str) -> None:
    print(f"Error: {msg}", file=sys.stderr)
    sys.exit(1)


def _non_negative_float(value: str) -> float:
    try:
        number = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value}")
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be non-negative: {value}")
    return number


def _non_negative_int(value: str) -> int:
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value}")
    if number < 0:
        raise argparse.ArgumentTypeError(f"must be non-negative: {value}")
    return number


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitwatch",
        description=DESCRIPTION,
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version", action="version", version=f"gitwatch {__version__}"
    )
    parser.add_argument(
        "-s", dest="sleep_time", metavar="secs", type=_non_negative_float,
        default=DEFAULT_SLEEP_TIME,
        help="seconds of quiet to wait after a change before committing (default: %(default)s)",
    )
    parser.add_argument(
        "-d", dest="date_format", metavar="fmt", default=DEFAULT_DATE_FMT,
        help="strftime format for the timestamp in the commit message; "
             "empty disables splicing (default: %(default)r)",
    )
    parser.add_argument(
        "-r", "-p", dest="remote", metavar="remote", default="",
        help="push to this remote after every commit",
    )
    parser.add_argument(
        "-b", dest="branch", metavar="branch", default="",
        help="remote branch to push to; without -r this has no effect",
    )
    parser.add_argument(
        "-m", dest="commit_message", metavar="msg", default=DEFAULT_COMMIT_MSG,
        help="commit message; %%d is replaced by the formatted date/time",
    )
    listing = parser.add_mutually_exclusive_group()
    listing.add_argument(
        "-l", dest="list_changes", metavar="lines", type=_non_negative_int,
        help="use the changed lines as commit message, up to this many lines; "
             "larger changes use diff statistics instead",
    )
    listing.add_argument(
        "-L", dest="list_changes_plain", metavar="lines", type=_non_negative_int,
        help="same as -l but without colour",
    )
    parser.add_argument(
        "-e", dest="events", metavar="events", default=DEFAULT_EVENTS,
        help="comma separated events to watch: close_write, modify, move, "
             "delete, create (default: %(default)s)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    parser.add_argument("target", help="file or directory to watch")
    return parser


def config_from_args(args: argparse.Namespace, git_bin: str = "git") -> WatchConfig:
    if args.list_changes is not None:
        policy = DiffSummaryPolicy(line_limit=args.list_changes, color=True)
    elif args.list_changes_plain is not None:
        policy = DiffSummaryPolicy(line_limit=args.list_changes_plain, color=False)
    else:
        policy = DiffSummaryPolicy.disabled()

    return WatchConfig(
        target=args.target,
        sleep_time=args.sleep_time,
        date_format=args.date_format,
        commit_message=args.commit_message,
        diff_policy=policy,
        events=parse_events(args.events),
        remote=args.remote,
        branch=args.branch,
        git_bin=git_bin,
    )


def _terminate(signum, frame) -> None:
    raise KeyboardInterrupt


def main(argv=None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format=LOG_FORMAT,
    )

    git_bin = git_bin_from_env()
    if not git_mod.is_command(git_bin):
        _die(f"Required command '{git_bin}' not found.")

    try:
        config = config_from_args(args, git_bin=git_bin)
    except ConfigError as exc:
        _die(str(exc))

    if not os.path.exists(config.target):
        _die(f"Path does not exist: {config.target}")

    try:
        session = WatchSession(config)
    except (ConfigError, git_mod.GitError) as exc:
        _die(str(exc))

    signal.signal(signal.SIGTERM, _terminate)
    try:
        session.run()
    except WatcherStoppedError as exc:
        _die(str(exc))


if __name__ == "__main__":
    main()
