"""
Package entry point.

Allows running the application via:

    python -m vertretungsplan
"""

from vertretungsplan.cli import main

if __name__ == "__main__":
    main()
