"""Adapters that connect the core pipeline to SQLite, disk, HTTP, and Markdown."""
