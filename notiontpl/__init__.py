"""notion-template: clone, export and instantiate Notion content from the command line."""

__version__ = "0.3.0"
