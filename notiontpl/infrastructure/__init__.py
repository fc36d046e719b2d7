"""Infrastructure Layer: Contains concrete implementations and adapters.

Connects the application to the outside world (Notion API, local files,
console, HTTP) by implementing the interfaces defined in the domain layer.
"""
