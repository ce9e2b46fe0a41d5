"""
Data models and response parsing.

Immutable subjects, aspects and day records, plus the parsers that build
them from calculation service responses.
"""
