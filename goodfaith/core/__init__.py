"""Core Layer — pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, infrastructure/, models/ or db/
    - All functions are pure and deterministic; ids and timestamps are passed in

Design Decisions:
    - Functional core separated from imperative shell: every rule (candidate
      ranking, verdicts, scoring, gating) is testable without fakes
"""
