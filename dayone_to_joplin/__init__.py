"""
Import a Day One journal export into Joplin through its local REST API.

Each entry of AllEntries.json becomes one note in the chosen notebook, with
its photos uploaded as resources and its tags created or reused.
"""
__all__ = [
    "config",
    "errors",
    "parser",
    "joplin_client",
    "tags",
    "resources",
    "exporter",
]
