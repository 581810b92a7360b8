"""Main entry point when executing uservibe as a package.

This allows running the package using python -m uservibe.
"""

from uservibe.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
