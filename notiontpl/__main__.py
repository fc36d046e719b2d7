"""Main entry point when executing notiontpl as a package.

This allows running the package using python -m notiontpl.
"""

from notiontpl.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
