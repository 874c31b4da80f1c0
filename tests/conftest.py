"""Root conftest — shared test configuration."""

import os

# Ensure tests don't accidentally use real API keys or a real database
os.environ.setdefault("GOODFAITH_ANTHROPIC_API_KEY", "sk-ant-test-fake-key")
os.environ.setdefault(
    "GOODFAITH_DATABASE_URL",
    "sqlite+aiosqlite:///:memory:",
)
os.environ.setdefault("GOODFAITH_OLLAMA_BASE_URL", "http://ollama.test/api")
