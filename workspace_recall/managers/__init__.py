"""Entry points used by the CLI and other presentation layers.

Managers accept a profile root, wire the concrete stores to the engine, and
raise domain exceptions (``AggregateFailure``, ``ParseError``) rather than
exit codes.  The CLI owns that translation.
"""
