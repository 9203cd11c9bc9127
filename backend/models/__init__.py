"""
Models

- domain: storage-agnostic dataclasses (rooms, ledger objects and events, strategies)
- api: pydantic request bodies (namespace package, imported by module path)
"""
