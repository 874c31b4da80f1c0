"""Good Faith bootstrap — wires settings, stores and oracles into a MoralReasoningEngine.

Invariants:
    - Logging is configured before anything else logs
    - Schema is created and the knowledge base seeded before the engine is returned
    - Every client opened here is closed by engine.close()

Design Decisions:
    - Explicit wiring (no container, no auto-discovery): one function shows every
      dependency the engine has
    - Embeddings always come from Ollama; inference from the configured provider
"""

import logging

from goodfaith.config import Settings, get_settings
from goodfaith.core.repository_protocols import InferenceOracle
from goodfaith.infrastructure.anthropic_client import ResilientAnthropicClient
from goodfaith.infrastructure.database import DatabaseSessionManager
from goodfaith.infrastructure.graph_store import SqlGraphStore
from goodfaith.infrastructure.observability import setup_logging
from goodfaith.infrastructure.ollama_client import OllamaClient, OllamaEmbedder
from goodfaith.infrastructure.session_locks import SessionLockRegistry
from goodfaith.infrastructure.session_store import SqlSessionStore
from goodfaith.infrastructure.vector_index import FlatVectorIndex
from goodfaith.services.answer_graph import AnswerGraph
from goodfaith.services.candidate_generator import CandidateGenerator
from goodfaith.services.contradiction_judge import ContradictionJudge
from goodfaith.services.engine import MoralReasoningEngine
from goodfaith.services.feedback import FeedbackWriter
from goodfaith.services.knowledge_base import KnowledgeBase
from goodfaith.services.question_source import QuestionSource
from goodfaith.services.session_analysis import SessionAnalyzer
from goodfaith.services.session_repository import SessionRepository
from goodfaith.services.stage_progression import StageProgression

logger = logging.getLogger(__name__)


async def build_engine(settings: Settings | None = None) -> MoralReasoningEngine:
    """Build a ready-to-use engine from settings (environment by default)."""
    settings = settings or get_settings()
    setup_logging(settings.log_level, settings.log_format)

    db = DatabaseSessionManager(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        echo=settings.database_echo,
    )
    await db.create_schema()
    graph = SqlGraphStore(db)

    ollama = OllamaClient(settings.ollama_base_url, settings.ollama_timeout_seconds)
    closers = [ollama.close, db.dispose]
    oracle: InferenceOracle
    if settings.inference_provider == "ollama":
        oracle = ollama
    else:
        anthropic_client = ResilientAnthropicClient(
            api_key=settings.anthropic_api_key,
            max_retries=settings.anthropic_max_retries,
            base_delay_ms=settings.anthropic_base_delay_ms,
            max_delay_ms=settings.anthropic_max_delay_ms,
            timeout_seconds=settings.anthropic_timeout_seconds,
        )
        oracle = anthropic_client
        closers.insert(0, anthropic_client.close)

    embedder = OllamaEmbedder(ollama, settings.ollama_embedding_model)
    index = FlatVectorIndex(settings.embedding_dimension)
    timeout = settings.oracle_timeout_seconds

    knowledge = KnowledgeBase(
        graph, embedder, index,
        timeout_seconds=timeout,
        required_answers=settings.default_required_answers,
    )
    await knowledge.ensure_seeded()

    reasoning_model = settings.active_reasoning_model
    lightweight_model = settings.active_lightweight_model
    engine = MoralReasoningEngine(
        knowledge=knowledge,
        sessions=SessionRepository(SqlSessionStore(db)),
        answer_graph=AnswerGraph(graph),
        candidates=CandidateGenerator(
            embedder, index,
            max_candidates=settings.max_candidates,
            max_tag_candidates=settings.max_tag_candidates,
            timeout_seconds=timeout,
        ),
        judge=ContradictionJudge(
            oracle, reasoning_model,
            temperature=settings.judge_temperature,
            max_tokens=settings.judge_max_tokens,
            timeout_seconds=timeout,
        ),
        analyzer=SessionAnalyzer(
            oracle, reasoning_model,
            temperature=settings.analysis_temperature,
            max_tokens=settings.analysis_max_tokens,
            timeout_seconds=timeout,
        ),
        progression=StageProgression(
            oracle, reasoning_model,
            temperature=settings.stage_check_temperature,
            max_tokens=settings.stage_check_max_tokens,
            timeout_seconds=timeout,
        ),
        question_source=QuestionSource(
            knowledge, oracle, lightweight_model,
            temperature=settings.question_temperature,
            max_tokens=settings.question_max_tokens,
            timeout_seconds=timeout,
            context_answers=settings.generation_context_answers,
        ),
        feedback=FeedbackWriter(
            oracle, lightweight_model,
            temperature=settings.feedback_temperature,
            max_tokens=settings.feedback_max_tokens,
            timeout_seconds=timeout,
        ),
        locks=SessionLockRegistry(),
        closers=closers,
    )
    logger.info(
        f"Good Faith engine ready (inference: {settings.inference_provider})",
        extra={"model": reasoning_model},
    )
    return engine
