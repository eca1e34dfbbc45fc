"""Bethany's Pie Shop: a FastAPI application wired with keywire.

Repositories are registered as scoped bindings, so every request gets its own
repository instances, and notifiers are keyed by delivery channel.
"""
