"""
Request-orchestration core: intent classification, relevance scoring,
strategy selection, agent execution and response formatting.
"""
