"""Summarization service built on Pydantic AI against an OpenAI-compatible endpoint."""

from __future__ import annotations

import asyncio
import time
from typing import Dict, Optional, TYPE_CHECKING

import httpx
from pydantic_ai import Agent
from pydantic_ai.models import Model
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider
from rich.console import Console

from tubesum import __version__ as tubesum_version
from tubesum.config.settings import Settings, get_settings

try:  # pragma: no cover - optional instrumentation dependency
    from langfuse import Langfuse
except ImportError:  # pragma: no cover - optional instrumentation dependency
    Langfuse = None  # type: ignore[assignment]

if TYPE_CHECKING:  # pragma: no cover - type checking only
    from langfuse import Langfuse as LangfuseClient
else:  # pragma: no cover - runtime fallback
    LangfuseClient = object  # type: ignore[misc, assignment]

SUMMARY_TEMPERATURE = 0.7
TRUNCATION_MARKER = "..."

SUMMARY_SECTIONS = (
    "## 📝 Overview",
    "## 🔑 Key Points",
    "## 💡 Key Takeaways",
    "## 🏷️ Topics Covered",
)

SYSTEM_PROMPT = """You are a helpful assistant that creates structured summaries of YouTube videos.
You MUST always respond in valid Markdown using EXACTLY the following structure, with no extra sections and no plain text:

## 📝 Overview
A 2-4 sentence high-level description of what the video is about.

## 🔑 Key Points
- Bullet point 1
- Bullet point 2
- Bullet point 3
(Add as many bullet points as needed to cover all important points.)

## 💡 Key Takeaways
- The most important insight or lesson from the video.
- Additional takeaway if applicable.

## 🏷️ Topics Covered
- Topic 1
- Topic 2
- Topic 3

Rules:
- Always use the exact headings above (including emojis).
- Use Markdown bullet lists (- ) under every section.
- Do NOT add any text outside of these four sections.
- Do NOT wrap your response in a code block.
- The response must be valid Markdown that renders correctly."""


class SummarizationError(RuntimeError):
    """Raised internally when the language model call fails or returns nothing usable."""


class SummarizationService:
    """Generate Markdown video summaries, degrading to a truncated excerpt on failure.

    A single attempt is made per call. Any failure (missing credentials, HTTP errors, empty
    output, timeouts) is logged and answered with the first characters of the input text, so
    callers always receive a non-empty summary for non-empty input.
    """

    def __init__(
        self,
        *,
        settings: Optional[Settings] = None,
        console: Optional[Console] = None,
        model: Optional[Model] = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._console = console or Console()
        self._http_client: Optional[httpx.AsyncClient] = None
        self._agent: Optional[Agent[None, str]] = self._create_agent(model)
        self._langfuse: Optional[LangfuseClient] = self._create_langfuse()

    @property
    def model_name(self) -> str:
        """Return the configured model identifier."""

        return self._settings.openrouter_model

    @property
    def system_prompt(self) -> str:
        """Expose the system prompt used for summarization requests."""

        return SYSTEM_PROMPT

    async def aclose(self) -> None:
        """Close the HTTP client created for the model provider, if any."""

        if self._http_client is not None:
            await self._http_client.aclose()

    async def summarize(self, text: str, title: str) -> str:
        """Summarize a transcript (or fallback text) for the given video title.

        Parameters
        ----------
        text:
            Transcript text to summarize. Truncated before submission when too long.
        title:
            Video title included in the prompt for context.

        Returns
        -------
        str
            The model's Markdown summary, or a truncated excerpt of ``text`` if the model
            call failed.
        """

        if self._agent is None:
            self._console.log("[yellow]OPENROUTER_API_KEY is not set; using truncated transcript as summary[/yellow]")
            return self.fallback_summary(text)

        prompt = self.build_user_prompt(text, title)
        trace = self._start_trace(title, prompt)
        start_time = time.perf_counter()
        try:
            result = await asyncio.wait_for(
                self._agent.run(prompt),
                timeout=self._settings.external_timeout_seconds,
            )
            summary = (result.output or "").strip()
            if not summary:
                raise SummarizationError("Model returned an empty summary")
        except Exception as exc:
            duration_seconds = time.perf_counter() - start_time
            self._record_trace(trace, {"error": str(exc) or exc.__class__.__name__}, "error", duration_seconds)
            self._console.log(
                f"[red]Summarization failed for {title!r}[/red] "
                f"(duration={duration_seconds:.2f}s, error={exc!r}); using truncated transcript"
            )
            return self.fallback_summary(text)

        duration_seconds = time.perf_counter() - start_time
        self._record_trace(trace, {"summary": summary}, "success", duration_seconds)
        self._console.log(f"Summarization succeeded for {title!r} (duration={duration_seconds:.2f}s)")
        return summary

    def build_user_prompt(self, text: str, title: str) -> str:
        """Compose the user message, truncating long transcripts with a trailing marker."""

        max_chars = self._settings.max_transcript_chars
        truncated = text[:max_chars] + TRUNCATION_MARKER if len(text) > max_chars else text
        return (
            "Summarize this YouTube video using the exact Markdown structure specified.\n\n"
            f"Title: {title}\n\n"
            f"Transcript:\n{truncated}"
        )

    def fallback_summary(self, text: str) -> str:
        """Return the degraded summary used whenever the model cannot be reached."""

        return text[: self._settings.fallback_summary_chars] + TRUNCATION_MARKER

    def _create_agent(self, model: Optional[Model]) -> Optional[Agent[None, str]]:
        """Instantiate the Pydantic AI agent, or ``None`` when no credentials are configured."""

        if model is None:
            api_key = (
                self._settings.openrouter_api_key.get_secret_value()
                if self._settings.openrouter_api_key is not None
                else None
            )
            if not api_key:
                return None
            self._http_client = httpx.AsyncClient(
                timeout=self._settings.external_timeout_seconds,
                headers={"HTTP-Referer": self._settings.app_url, "X-Title": "YouTube Summary System"},
            )
            provider = OpenAIProvider(
                base_url=str(self._settings.openrouter_base_url),
                api_key=api_key,
                http_client=self._http_client,
            )
            model = OpenAIChatModel(self._settings.openrouter_model, provider=provider)

        return Agent(
            model,
            output_type=str,
            system_prompt=SYSTEM_PROMPT,
            model_settings={"temperature": SUMMARY_TEMPERATURE},
        )

    def _create_langfuse(self) -> Optional[LangfuseClient]:
        """Initialise Langfuse tracing if the dependency and credentials are available."""

        if Langfuse is None:
            return None
        if self._settings.langfuse_public_key is None or self._settings.langfuse_secret_key is None:
            return None

        kwargs: Dict[str, str] = {
            "public_key": self._settings.langfuse_public_key.get_secret_value(),
            "secret_key": self._settings.langfuse_secret_key.get_secret_value(),
        }
        if self._settings.langfuse_host is not None:
            kwargs["host"] = str(self._settings.langfuse_host)

        try:
            return Langfuse(**kwargs)  # type: ignore[call-arg]
        except Exception as exc:  # pragma: no cover - instrumentation failures are non-fatal
            self._console.log(f"LangFuse initialization failed: {exc}")
            return None

    def _start_trace(self, title: str, prompt: str) -> Optional[object]:
        """Open a Langfuse trace for the current summarization call, if supported."""

        if self._langfuse is None:
            return None
        trace_callable = getattr(self._langfuse, "trace", None)
        if not callable(trace_callable):
            return None

        try:
            return trace_callable(
                name="summarization",
                input={"prompt": prompt},
                metadata={"title": title, "model": self.model_name, "version": tubesum_version},
            )
        except Exception as exc:  # pragma: no cover - instrumentation failures are non-fatal
            self._console.log(f"LangFuse trace creation failed: {exc}")
            return None

    def _record_trace(
        self,
        trace: Optional[object],
        output: Dict[str, str],
        status: str,
        duration_seconds: float,
    ) -> None:
        """Close a Langfuse trace with the call outcome."""

        if trace is None:
            return
        end_callable = getattr(trace, "end", None)
        if not callable(end_callable):
            return

        try:
            end_callable(
                output=output,
                status=status,
                metadata={"duration_seconds": duration_seconds, "model": self.model_name},
            )
        except Exception as exc:  # pragma: no cover - instrumentation failures are non-fatal
            self._console.log(f"LangFuse trace completion failed: {exc}")


__all__ = ["SUMMARY_SECTIONS", "SYSTEM_PROMPT", "SummarizationError", "SummarizationService"]
