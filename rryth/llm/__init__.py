"""LLM adapter package.

Provides the default chat-completions backed translator used when prompt
translation is enabled and no host translator is injected.
"""
