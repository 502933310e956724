"""Agent clients answering the engine's questions."""

from .base import AgentClient, AgentQuery, AgentQueryError, Decision, QueryKind, TokenUsage, query_agent
from .http_agent import OpenRouterAgentClient, ServiceAgentClient
from .random_agent import RandomAgentClient

__all__ = [
    "AgentClient",
    "AgentQuery",
    "AgentQueryError",
    "Decision",
    "QueryKind",
    "TokenUsage",
    "query_agent",
    "OpenRouterAgentClient",
    "ServiceAgentClient",
    "RandomAgentClient",
]
