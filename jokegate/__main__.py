"""Main entry point when executing jokegate as a package.

This allows running the package using python -m jokegate.
"""

from jokegate.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
