"""
Services Layer

Bracket business logic:
- Take an injected Session at construction
- Return typed records and plain dataclasses, never HTTP objects
- Raise knockout.errors exceptions for domain failures
"""
