"""HTTP agent clients.

OpenRouterAgentClient talks to a chat-completions endpoint directly, one model
per player. ServiceAgentClient talks to agent_service instances running in
their own processes or containers.
"""

import asyncio
import json
import logging
from abc import abstractmethod
from typing import TYPE_CHECKING, Any, Dict, Optional

import httpx
from pydantic import ValidationError

from ..core.config import GameConfig
from .base import AgentClient, AgentQuery, AgentQueryError, Decision, TokenUsage
from .prompts.player_templates import PlayerPrompts

if TYPE_CHECKING:
    from ..core.game_state import Player

logger = logging.getLogger(__name__)


class MalformedReplyError(ValueError):
    """The agent answered, but not with a usable decision."""


def extract_json(content: str) -> str:
    """Cut the outermost {...} object out of text that may surround it."""
    content = content.strip()
    if content.startswith("{") and content.endswith("}"):
        return content
    start = content.find("{")
    end = content.rfind("}")
    if start >= 0 and end > start:
        return content[start : end + 1]
    return content


def parse_decision(content: str) -> Decision:
    """Turn raw model output into a Decision.

    Raises:
        MalformedReplyError: no JSON object, invalid JSON, or an empty action
    """
    try:
        decision = Decision.model_validate_json(extract_json(content))
    except ValidationError as e:
        raise MalformedReplyError(f"Invalid JSON format: {e.errors()[0]['msg']}") from e
    if not decision.has_action:
        raise MalformedReplyError("Action field is empty")
    return decision


class _RetryingHttpClient(AgentClient):
    """Shared retry loop: transport errors, HTTP errors and malformed replies."""

    def __init__(self, config: GameConfig, http_client: Optional[httpx.AsyncClient] = None):
        self.config = config
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.AsyncClient(timeout=config.request_timeout)
        self.usage = TokenUsage()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.http_client.aclose()

    @abstractmethod
    async def _request_once(self, player: "Player", query: AgentQuery, prompt: str) -> Decision:
        """Send one request and parse the reply, without retrying."""

    async def ask(self, player: "Player", query: AgentQuery) -> Decision:
        prompt = query.prompt
        last_error: Optional[Exception] = None

        for attempt in range(self.config.max_retries + 1):
            try:
                decision = await self._request_once(player, query, prompt)
                logger.debug(f"Parsed response for {player.id}: action={decision.action}")
                return decision
            except MalformedReplyError as e:
                # Re-ask with the complaint attached
                logger.warning(f"Malformed reply from {player.id} (attempt {attempt + 1}): {e}")
                prompt = PlayerPrompts.error_correction(query.prompt, str(e))
                last_error = e
            except (httpx.HTTPError, KeyError, IndexError, TypeError, ValueError) as e:
                logger.warning(f"Request failed for {player.id} (attempt {attempt + 1}): {e}")
                last_error = e
                if attempt < self.config.max_retries:
                    await asyncio.sleep(self.config.retry_delay)

        raise AgentQueryError(
            f"{player.id}: no valid reply after {self.config.max_retries + 1} attempts ({last_error})"
        )


class OpenRouterAgentClient(_RetryingHttpClient):
    """Queries an OpenRouter-compatible chat-completions API."""

    def _request_body(self, model: str, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        return {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
        }

    def _record_usage(self, usage: Optional[Dict[str, Any]]) -> None:
        if not usage:
            return
        self.usage.add(
            int(usage.get("prompt_tokens") or 0),
            int(usage.get("completion_tokens") or 0),
        )

    async def _request_once(self, player: "Player", query: AgentQuery, prompt: str) -> Decision:
        model =player.model_id or self.config.default_model
        system_prompt = query.system_prompt or PlayerPrompts.system_prompt(player)

        response = await self.http_client.post(
            self.config.api_url,
            json=self._request_body(model, system_prompt, prompt),
            headers={
                "Authorization": f"Bearer {self.config.api_key or ''}",
                "X-Title": "mafiasim",
            },
        )
        response.raise_for_status()
        data = response.json()
        self._record_usage(data.get("usage"))

        choices = data.get("choices") or []
        if not choices:
            raise MalformedReplyError("No choices in response")
        content = choices[0]["message"]["content"] or ""
        logger.debug(f"Raw response for {player.id} ({model}): {content}")
        return parse_decision(content)


def player_number(player_id: str) -> int:
    """'Player_7' -> 7."""
    return int(player_id.rsplit("_", 1)[-1])


class ServiceAgentClient(_RetryingHttpClient):
    """Queries one agent_service instance per player via HTTP."""

    def __init__(
        self,
        config: GameConfig,
        http_client: Optional[httpx.AsyncClient] = None,
        agent_urls: Optional[Dict[str, str]] = None,
    ):
        super().__init__(config, http_client)
        self.agent_urls: Dict[str, str] = dict(agent_urls or {})

    def url_for(self, player: "Player") -> str:
        """Explicit per-player URL, else the base URL.

        A base URL without a port maps each player to base_port + player
        number. A base URL that already names a port is shared by every
        player; the service reads the player from the request body.
        """
        if player.id in self.agent_urls:
            return self.agent_urls[player.id]
        base = httpx.URL(self.config.agent_base_url or "http://localhost")
        if base.port is None:
            base = base.copy_with(port=self.config.agent_base_port + player_number(player.id))
        return str(base).rstrip("/")

    async def _request_once(self, player: "Player", query: AgentQuery, prompt: str) -> Decision:
        payload = {
            "player": {**player.to_dict(), "context_memory": list(player.context_memory)},
            "query": {
                "kind": query.kind.value,
                "prompt": prompt,
                "candidates": list(query.candidates),
                "system_prompt": query.system_prompt,
            },
        }
        response = await self.http_client.post(f"{self.url_for(player)}/ask", json=payload)
        response.raise_for_status()
        try:
            decision = Decision.model_validate(response.json())
        except (ValidationError, json.JSONDecodeError) as e:
            raise MalformedReplyError(f"Invalid decision payload: {e}") from e
        if not decision.has_action:
            raise MalformedReplyError("Action field is empty")
        return decision
