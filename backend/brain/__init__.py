"""
AI Brain request-orchestration core.

Classifies a chat message, decides whether workspace context is needed,
routes the request to data-source agents and merges their answers.
"""

__version__ = "0.1.0"
