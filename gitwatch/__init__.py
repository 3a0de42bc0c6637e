"""gitwatch - watch a file or directory and git commit all changes as they happen."""

__version__ = "0.1.0"
