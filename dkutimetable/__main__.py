"""
Package entry point.

Allows running the application via:

    python -m dkutimetable

This simply forwards execution to dkutimetable.cli.main().
"""

from dkutimetable.cli import main

if __name__ == "__main__":
    main()
