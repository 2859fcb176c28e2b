from __future__ import annotations

import asyncio
import json
import logging
import textwrap
from typing import Any, Optional, Sequence

import google.generativeai as genai

from deploydeck.models import Commit, Project


logger = logging.getLogger("deploydeck.gemini")

DEFAULT_MODEL_NAME = "gemini-2.0-flash"
SUGGESTION_FALLBACK = (
    "Unable to generate suggestions at this time. Please check your deployment logs manually."
)
ANALYSIS_FALLBACK = "Unable to analyze code at this time."
MAX_LOG_CHARS = 6000


class GeminiAdvisor:
    """Troubleshooting and commit analysis text from Gemini; falls back to static text on any failure."""

    def __init__(self, api_key: Optional[str], model_name: str = DEFAULT_MODEL_NAME):
        self.api_key = api_key
        self.model_name = model_name

    async def suggest_fix(self, error: str, logs: str, project: Optional[Project] = None) -> str:
        prompt = self.build_suggestion_prompt(error, logs, project)
        return await self._generate(prompt, SUGGESTION_FALLBACK)

    async def analyze_commits(self, repo_url: str, commits: Sequence[Commit]) -> str:
        prompt = self.build_analysis_prompt(repo_url, commits)
        return await self._generate(prompt, ANALYSIS_FALLBACK)

    @staticmethod
    def build_suggestion_prompt(error: str, logs: str, project: Optional[Project] = None) -> str:
        if len(logs) > MAX_LOG_CHARS:
            logs = "(truncated)\n" + logs[-MAX_LOG_CHARS:]
        project_block = ""
        if project is not None:
            project_info = {
                "name": project.name,
                "githubUrl": project.github_url,
                "description": project.description,
            }
            project_block = f"Project Info: {json.dumps(project_info, indent=2)}"
        return "\n".join(
            [
                "You are a DevOps expert helping to troubleshoot deployment issues.",
                "",
                "Deployment Error:",
                error,
                "",
                "Deployment Logs:",
                logs,
                "",
                project_block,
                "",
                "Please provide:",
                "1. Root cause analysis",
                "2. Step-by-step solution",
                "3. Prevention strategies",
                "4. Best practices recommendations",
                "",
                "Format your response in clear, actionable steps.",
            ]
        ).strip()

    @staticmethod
    def build_analysis_prompt(repo_url: str, commits: Sequence[Commit]) -> str:
        commit_lines = "\n".join(f"- {commit.message} ({commit.author})" for commit in commits)
        return textwrap.dedent(
            """
            Analyze this repository and recent commits for potential deployment issues:

            Repository: {repo_url}

            Recent commits:
            {commit_lines}

            Provide insights on:
            1. Potential deployment issues
            2. Code quality concerns
            3. Best practices recommendations
            4. Suggested improvements

            Keep the response concise and actionable.
            """
        ).strip().format(repo_url=repo_url, commit_lines=commit_lines or "(no commits recorded)")

    async def _generate(self, prompt: str, fallback: str) -> str:
        if not self.api_key:
            logger.warning("GEMINI_API_KEY missing; falling back to static response.")
            return fallback

        try:
            response_text = await asyncio.to_thread(self._call_gemini, prompt)
        except Exception as exc:  # pylint: disable=broad-except
            logger.exception("Gemini call failed, using fallback: %s", exc)
            return fallback

        if not response_text:
            logger.warning("Gemini returned an empty response; using fallback.")
            return fallback

        return response_text

    def _call_gemini(self, prompt: str) -> str:
        genai.configure(api_key=self.api_key)
        model = genai.GenerativeModel(self.model_name)
        response: Any = model.generate_content(prompt)
        if hasattr(response, "text") and response.text:
            return response.text.strip()

        candidates = getattr(response, "candidates", None) or []
        for candidate in candidates:
            parts = getattr(candidate, "content", None)
            if not parts:
                continue
            for part in getattr(parts, "parts", []):
                text = getattr(part, "text", None)
                if text:
                    return text.strip()

        return ""
