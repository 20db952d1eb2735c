"""Top-level orchestration for the news RAG system."""

from newsrag.pipeline.orchestrator import RAGOrchestrator

__all__ = ["RAGOrchestrator"]
