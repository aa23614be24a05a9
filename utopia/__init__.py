"""YAML file storage for specs, change requests, conversations and drafts, with a claude CLI wrapper."""

__version__ = "0.1.0"