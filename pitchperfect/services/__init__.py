"""Adapters for hosted services (edge functions, LLM)."""
