"""Good Faith — moral consistency engine.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)

Design Decisions:
    - Empty __init__.py: explicit imports only, no star exports; hosts import
      goodfaith.main.build_engine
"""
