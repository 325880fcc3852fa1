"""
AI tag generation with an ordered provider chain and a rule-based fallback.

Providers are tried in the configured order (OpenAI, then Claude, by default).
The first provider that succeeds with at least `min_tags` tags wins. When none
does, a single tag derived from the platform name is returned. Provider errors,
timeouts, and malformed responses are recorded per attempt and never raised.
"""
import asyncio
import json
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
from openai import AsyncOpenAI
from openai.types.chat import ChatCompletion

from core.config import Settings, get_settings

logger = logging.getLogger(__name__)

ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"

MAX_TAGS_PER_RESPONSE = 5
FALLBACK_CONFIDENCE = 0.7
DEFAULT_CONFIDENCE = 0.5

TAGGING_PROMPT = """Analyze the following saved content and generate 3-5 short topic tags.
Title: {title}
Description: {description}
Platform: {platform}
Creator: {creator}
Respond in JSON only: {{"tags": [{{"name": "tag", "confidence": 0.9, "category": "topic"}}]}}"""

SYSTEM_PROMPT = "You are a content tagging expert. Respond in valid JSON."


@dataclass
class GeneratedTag:
    """A tag proposed for a content, with the provider's confidence (0-1)."""

    name: str
    confidence: float
    category: str | None = None


@dataclass
class TaggingInput:
    """What the tagger knows about a content."""

    title: str | None
    description: str | None
    platform: str
    creator_name: str | None
    url: str
    content_type: str = "content"


@dataclass
class TaggingResult:
    """Outcome of one provider attempt."""

    provider: str
    tags: list[GeneratedTag]
    success: bool
    processing_time_ms: int
    error: str | None = None


@dataclass
class TagAnalysis:
    """Final tags plus a record of every provider attempt."""

    tags: list[GeneratedTag]
    sources: list[TaggingResult]
    strategy: str
    total_processing_time_ms: int


@dataclass
class TaggingConfig:
    """
    Acceptance rules for the provider chain.

    min_confidence is carried for callers that want it but is not applied
    when selecting tags.
    """

    min_tags: int = 3
    max_tags: int = 5
    min_confidence: float = 0.6
    providers: list[str] = field(default_factory=lambda: ["openai", "claude"])
    timeout: float = 10.0

    @classmethod
    def from_settings(cls, settings: Settings) -> "TaggingConfig":
        """Build the config from application settings."""
        return cls(
            min_tags=settings.tagging_min_tags,
            max_tags=settings.tagging_max_tags,
            min_confidence=settings.tagging_min_confidence,
            providers=settings.tagging_providers,
            timeout=settings.tagging_timeout,
        )


def fill_prompt_template(data: TaggingInput) -> str:
    """Render the tagging prompt for one content."""
    return TAGGING_PROMPT.format(
        title=data.title or "",
        description=data.description or "",
        platform=data.platform,
        creator=data.creator_name or "",
    )


def _coerce_confidence(value: Any) -> float:  # noqa: ANN401
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    return min(max(confidence, 0.0), 1.0)


def parse_tags_payload(payload: Any) -> list[GeneratedTag]:  # noqa: ANN401
    """
    Convert a decoded provider response into tags.

    Expects {"tags": [{"name": ..., "confidence": ..., "category": ...}]}.
    Entries without a usable name are dropped; at most five tags are kept.
    A payload without a tags list yields no tags.
    """
    if not isinstance(payload, dict):
        return []
    raw_tags = payload.get("tags")
    if not isinstance(raw_tags, list):
        return []

    tags = []
    for item in raw_tags:
        if not isinstance(item, dict):
            continue
        name = item.get("name")
        if not isinstance(name, str) or not name.strip():
            continue
        category = item.get("category")
        tags.append(GeneratedTag(
            name=name.strip(),
            confidence=_coerce_confidence(item.get("confidence")),
            category=category if isinstance(category, str) else None,
        ))
        if len(tags) == MAX_TAGS_PER_RESPONSE:
            break
    return tags


def extract_json_object(text: str) -> Any:  # noqa: ANN401
    """
    Decode the first {...} block in free-form model output.

    Raises:
        ValueError: If no JSON object is present or it does not decode.
    """
    match = re.search(r"\{[\s\S]*\}", text)
    if not match:
        raise ValueError("No JSON object found in response")
    return json.loads(match.group(0))


class TagProvider(Protocol):
    """One AI tagging backend."""

    name: str

    def is_available(self) -> bool:
        """Whether the provider is configured (e.g. has an API key)."""
        ...

    async def attempt(self, data: TaggingInput) -> TaggingResult:
        """Request tags; failures are reported in the result, not raised."""
        ...


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


class OpenAITagProvider:
    """Tags from the OpenAI chat completions API in JSON mode."""

    name = "openai"

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        timeout: float = 10.0,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client = client

    def is_available(self) -> bool:
        """Available when an API key is configured or a client was injected."""
        return bool(self.api_key) or self._client is not None

    async def _complete(self, client: AsyncOpenAI, data: TaggingInput) -> ChatCompletion:
        return await client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": fill_prompt_template(data)},
            ],
            temperature=0.3,
            max_tokens=500,
            response_format={"type": "json_object"},
        )

    async def attempt(self, data: TaggingInput) -> TaggingResult:
        """
        Ask the model for tags as a JSON object.

        An injected client is reused and left open; otherwise a client is
        opened for this attempt and closed when it finishes.
        """
        start = time.monotonic()
        try:
            if self._client is not None:
                response = await self._complete(self._client, data)
            else:
                async with AsyncOpenAI(api_key=self.api_key, timeout=self.timeout) as client:
                    response = await self._complete(client, data)
            content = response.choices[0].message.content if response.choices else None
            if not content:
                raise ValueError("Empty response")
            tags = parse_tags_payload(json.loads(content))
        except Exception as e:
            return TaggingResult(
                provider=self.name,
                tags=[],
                success=False,
                processing_time_ms=_elapsed_ms(start),
                error=str(e),
            )
        return TaggingResult(
            provider=self.name,
            tags=tags,
            success=True,
            processing_time_ms=_elapsed_ms(start),
        )


class ClaudeTagProvider:
    """Tags from the Anthropic Messages API."""

    name = "claude"

    def __init__(
        self,
        api_key: str,
        model: str = "claude-3-haiku-20240307",
        timeout: float = 10.0,
        endpoint: str = ANTHROPIC_MESSAGES_URL,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.endpoint = endpoint

    def is_available(self) -> bool:
        """Available when an API key is configured."""
        return bool(self.api_key)

    async def attempt(self, data: TaggingInput) -> TaggingResult:
        """Send the prompt as a single user message and parse the JSON in the reply."""
        start = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.endpoint,
                    headers={
                        "x-api-key": self.api_key,
                        "anthropic-version": ANTHROPIC_VERSION,
                        "content-type": "application/json",
                    },
                    json={
                        "model": self.model,
                        "max_tokens": 500,
                        "messages": [{"role": "user", "content": fill_prompt_template(data)}],
                    },
                )
                response.raise_for_status()
                body = response.json()
            blocks = body.get("content") or []
            if not blocks or blocks[0].get("type") != "text":
                raise ValueError("Not a text response")
            tags = parse_tags_payload(extract_json_object(blocks[0].get("text", "")))
        except Exception as e:
            return TaggingResult(
                provider=self.name,
                tags=[],
                success=False,
                processing_time_ms=_elapsed_ms(start),
                error=str(e),
            )
        return TaggingResult(
            provider=self.name,
            tags=tags,
            success=True,
            processing_time_ms=_elapsed_ms(start),
        )


def generate_fallback_tags(data: TaggingInput) -> list[GeneratedTag]:
    """Deterministic tag from the platform name (none when it is blank)."""
    if data.platform and data.platform.strip():
        return [GeneratedTag(
            name=data.platform.strip(),
            confidence=FALLBACK_CONFIDENCE,
            category="platform",
        )]
    return []


def build_providers(settings: Settings) -> list[TagProvider]:
    """Instantiate providers in the configured order; unknown names are skipped."""
    factories = {
        "openai": lambda: OpenAITagProvider(
            settings.openai_api_key,
            model=settings.openai_model,
            timeout=settings.tagging_timeout,
        ),
        "claude": lambda: ClaudeTagProvider(
            settings.anthropic_api_key,
            model=settings.anthropic_model,
            timeout=settings.tagging_timeout,
        ),
    }
    providers = []
    for name in settings.tagging_providers:
        factory = factories.get(name)
        if factory is None:
            logger.warning("Unknown tagging provider '%s' in configuration, skipping", name)
            continue
        providers.append(factory())
    return providers


class TagGenerator:
    """Runs the provider chain under the acceptance rules of a TaggingConfig."""

    def __init__(self, providers: list[TagProvider], config: TaggingConfig) -> None:
        self.providers = providers
        self.config = config

    async def _attempt(self, provider: TagProvider, data: TaggingInput) -> TaggingResult:
        start = time.monotonic()
        try:
            return await asyncio.wait_for(provider.attempt(data), timeout=self.config.timeout)
        except TimeoutError:
            return TaggingResult(
                provider=provider.name,
                tags=[],
                success=False,
                processing_time_ms=_elapsed_ms(start),
                error=f"Timed out after {self.config.timeout}s",
            )
        except Exception as e:
            logger.exception("Tagging provider %s raised", provider.name)
            return TaggingResult(
                provider=provider.name,
                tags=[],
                success=False,
                processing_time_ms=_elapsed_ms(start),
                error=str(e),
            )

    async def generate(self, data: TaggingInput) -> TagAnalysis:
        """Return tags for a content; never raises."""
        start = time.monotonic()
        sources: list[TaggingResult] = []

        for provider in self.providers:
            if provider.name not in self.config.providers or not provider.is_available():
                continue
            result = await self._attempt(provider, data)
            sources.append(result)
            logger.info(
                "Tagging attempt provider=%s success=%s tags=%d latency_ms=%d error=%s",
                result.provider,
                result.success,
                len(result.tags),
                result.processing_time_ms,
                result.error,
            )
            if result.success and len(result.tags) >= self.config.min_tags:
                return TagAnalysis(
                    tags=result.tags[:self.config.max_tags],
                    sources=sources,
                    strategy=f"{provider.name}_only",
                    total_processing_time_ms=_elapsed_ms(start),
                )

        return TagAnalysis(
            tags=generate_fallback_tags(data),
            sources=sources,
            strategy="fallback",
            total_processing_time_ms=_elapsed_ms(start),
        )


async def generate_tags(
    data: TaggingInput,
    config: TaggingConfig | None = None,
    providers: list[TagProvider] | None = None,
) -> TagAnalysis:
    """
    Generate tags for a content.

    Args:
        data: What is known about the content. `platform` should be the
            platform display name since it doubles as the fallback tag.
        config: Acceptance rules; defaults to application settings.
        providers: Provider chain; defaults to the configured providers.
    """
    if providers is None or config is None:
        settings = get_settings()
        providers = providers if providers is not None else build_providers(settings)
        config = config or TaggingConfig.from_settings(settings)
    return await TagGenerator(providers, config).generate(data)
