"""
Watcher Layer - Filesystem monitoring and automatic commits.

Monitors the target with watchdog, feeds every relevant change into the
debounce scheduler, and runs the commit sequence (stage, message, commit,
optional push) whenever a burst of changes has settled.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, FrozenSet, List, Optional

from watchdog.events import EVENT_TYPE_MODIFIED, FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .config import GIT_DIR_NAME, ConfigError, WatchConfig
from .diff import DiffSummarizer
from .git import CommitExecutor, GitError, GitPushError, push_command_for
from .message import CommitMessageBuilder
from .scheduler import DebounceScheduler


logger = logging.getLogger(__name__)


class WatcherStoppedError(RuntimeError):
    """Raised when the filesystem observer ends on its own."""
    pass


@dataclass(frozen=True)
class CommitRequest:
    """A single commit to perform, consumed exactly once."""
    timestamp: datetime
    message: str
    push: bool


class ChangeEventHandler(FileSystemEventHandler):
    """Forward relevant filesystem events to the debounce scheduler."""

    def __init__(self, on_change: Callable[[], None], event_types: FrozenSet[str],
                 root: str, watched_file: Optional[str] = None):
        super().__init__()
        self.on_change = on_change
        self.event_types = event_types
        self.root = Path(root)
        self.watched_file = watched_file

    def on_any_event(self, event: FileSystemEvent) -> None:
        """Handle any filesystem event."""
        if event.event_type not in self.event_types:
            return
        # Directory mtime updates only echo changes to their children
        if event.is_directory and event.event_type == EVENT_TYPE_MODIFIED:
            return

        paths = [event.src_path]
        dest_path = getattr(event, "dest_path", "")
        if dest_path:
            paths.append(dest_path)

        if self.watched_file is not None:
            if not any(self._same_file(p) for p in paths):
                return
        elif all(self._should_ignore_path(p) for p in paths):
            return

        logger.debug("%s: %s", event.event_type, event.src_path)
        self.on_change()

    def _same_file(self, path) -> bool:
        return os.path.abspath(os.fsdecode(path)) == self.watched_file

    def _should_ignore_path(self, path) -> bool:
        """Check if path lies inside the repository's metadata directory."""
        path_obj = Path(os.fsdecode(path))
        try:
            parts = path_obj.relative_to(self.root).parts
        except ValueError:
            parts = path_obj.parts
        return GIT_DIR_NAME in parts


class WatchSession:
    """Everything resolved once at startup, plus the commit sequence.

    Raises:
        ConfigError: If the target is neither a file nor a directory
        GitError: If the repository state cannot be read
    """

    def __init__(self, config: WatchConfig, executor: Optional[CommitExecutor] = None,
                 clock: Callable[[], datetime] = datetime.now):
        self.config = config
        target = os.path.realpath(config.target)

        if os.path.isdir(target):
            self.work_dir = target
            self.watched_file: Optional[str] = None
            self.recursive = True
            add_args: List[str] = ["--all", "."]
        elif os.path.isfile(target):
            self.work_dir = os.path.dirname(target)
            self.watched_file = target
            self.recursive = False
            add_args = [target]
        else:
            raise ConfigError(f"The target is neither a regular file nor a directory: {target}")

        self.target = target
        self.executor = executor or CommitExecutor(self.work_dir, add_args, config.git_bin)
        self.repo_root = self.executor.ensure_repo()

        summarizer = None
        if config.diff_policy.enabled:
            summarizer = DiffSummarizer(config.diff_policy, self.executor.diff, self.executor.diff_stat)
        self.builder = CommitMessageBuilder(config.commit_message, config.date_format,
                                            summarizer=summarizer, clock=clock)
        self._clock = clock

        # HEAD is read once; later branch switches do not change the target
        self.push_command = push_command_for(self.executor, config.remote, config.branch)
        self.scheduler = DebounceScheduler(config.sleep_time, self.commit_once)

    def prepare_request(self) -> CommitRequest:
        now = self._clock()
        return CommitRequest(
            timestamp=now,
            message=self.builder.build(now),
            push=self.push_command is not None,
        )

    def commit_once(self) -> Optional[str]:
        """Run one commit sequence.

        Failures are reported and absorbed so the watch loop keeps going.

        Returns:
            The new commit hash, or ``None`` if nothing was committed
        """
        try:
            self.executor.stage()
            if not self.executor.has_staged_changes():
                logger.info("No changes to commit")
                return None
            request = self.prepare_request()
            commit_hash = self.executor.commit(request.message)
        except GitError as e:
            logger.error("Auto-commit failed: %s", e)
            return None

        logger.info("Auto-committed %s", commit_hash[:8])

        if request.push:
            try:
                self.executor.push(self.push_command)
                logger.info("Pushed: git %s", " ".join(self.push_command))
            except GitPushError as e:
                logger.error("%s", e)
        return commit_hash

    def handler(self) -> ChangeEventHandler:
        root = self.work_dir if self.watched_file is not None else self.target
        return ChangeEventHandler(self.scheduler.on_event, self.config.events,
                                  root, self.watched_file)

    def run(self, observer=None) -> None:
        """Watch until interrupted.

        Any pending debounce timer is cancelled before returning.

        Raises:
            WatcherStoppedError: If the observer stops by itself
        """
        observer = observer or Observer()
        observer.schedule(self.handler(), self.work_dir, recursive=self.recursive)

        self.scheduler.start()
        observer.start()

        print(f"Watching {self.target} for changes (debounce: {self.config.sleep_time}s)")
        print("Press Ctrl+C to stop watching...")

        try:
            while observer.is_alive():
                observer.join(1)
            raise WatcherStoppedError("Filesystem watcher stopped unexpectedly")
        except KeyboardInterrupt:
            print("\nStopping gitwatch...")
        finally:
            self.scheduler.close()
            observer.stop()
            if observer.is_alive():
                observer.join()
