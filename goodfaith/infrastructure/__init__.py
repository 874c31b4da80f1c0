"""Infrastructure Layer — store, oracle and index implementations plus cross-cutting concerns.

Invariants:
    - Infrastructure imports errors, protocols and graph types from core/, never rules
    - Every external failure is mapped to a GoodFaithError subclass before it leaves here

Design Decisions:
    - Resilient wrappers over raw clients: callers see GoodFaithError subclasses only
"""
