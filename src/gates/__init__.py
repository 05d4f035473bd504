"""
Decision Gates Package

Each gate inspects an intent and returns an immutable GateVerdict:
- actionability: is the goal concrete enough to plan from
- safety / lexicon_guard: disallowed content, non-goals
- realism: implausible claims for the declared duration
- controllability: outcomes that depend on others (optional)

Modules are imported directly (src.gates.<module>); the shared pattern
helpers are imported by the domain package too.
"""
