"""API Resilience Implementations.

Contains the bounded concurrency limiter and the retry service with
exponential backoff used for every call to the Notion API.
"""
