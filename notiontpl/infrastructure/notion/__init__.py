"""Notion API adapter and property schema helpers."""
