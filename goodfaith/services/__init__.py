"""Services Layer — async orchestration of core rules around stores and oracles.

Invariants:
    - Stores and oracles are reached through core Protocols; the only concrete
      infrastructure import is the per-user lock registry
    - Oracle failures are handled here: degrade, skip or raise OracleUnavailableError

Design Decisions:
    - One service per concern, composed by services/engine.py
"""
