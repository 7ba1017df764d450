"""Main entry point when executing hxclient as a package.

This allows running the package using python -m hxclient.
"""

from hxclient.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
