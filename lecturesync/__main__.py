"""
Package entry point.

Allows running the tool via:

    python -m lecturesync

This simply forwards execution to lecturesync.cli.main().
"""

from lecturesync.cli import main

if __name__ == "__main__":
    main()
