"""
Entry point for running gitwatch as ``python -m gitwatch``.
"""

from .cli import main

if __name__ == '__main__':
    main()
