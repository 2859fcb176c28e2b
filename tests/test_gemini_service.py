from __future__ import annotations

import unittest
from datetime import datetime, timezone
from unittest import mock

from deploydeck.models import Commit, Project
from deploydeck.services import GeminiAdvisor
from deploydeck.services.gemini_service import ANALYSIS_FALLBACK, MAX_LOG_CHARS, SUGGESTION_FALLBACK

from tests.support import REPO_URL


class GeminiAdvisorTest(unittest.IsolatedAsyncioTestCase):
    async def test_missing_key_uses_fallback(self) -> None:
        advisor = GeminiAdvisor(api_key=None)
        with mock.patch.object(advisor, "_call_gemini") as call:
            self.assertEqual(await advisor.suggest_fix("boom", "logs"), SUGGESTION_FALLBACK)
            self.assertEqual(await advisor.analyze_commits(REPO_URL, []), ANALYSIS_FALLBACK)
        call.assert_not_called()

    async def test_provider_error_uses_fallback(self) -> None:
        advisor = GeminiAdvisor(api_key="key")
        with mock.patch.object(advisor, "_call_gemini", side_effect=RuntimeError("quota exceeded")):
            self.assertEqual(await advisor.suggest_fix("boom", "logs"), SUGGESTION_FALLBACK)

    async def test_empty_reply_uses_fallback(self) -> None:
        advisor = GeminiAdvisor(api_key="key")
        with mock.patch.object(advisor, "_call_gemini", return_value=""):
            self.assertEqual(await advisor.analyze_commits(REPO_URL, []), ANALYSIS_FALLBACK)

    async def test_reply_is_returned(self) -> None:
        advisor = GeminiAdvisor(api_key="key")
        with mock.patch.object(advisor, "_call_gemini", return_value="Pin your node version.") as call:
            reply = await advisor.suggest_fix("Build failed", "npm ERR!")
        self.assertEqual(reply, "Pin your node version.")
        prompt = call.call_args.args[0]
        self.assertIn("Build failed", prompt)
        self.assertIn("npm ERR!", prompt)


class PromptTest(unittest.TestCase):
    def test_suggestion_prompt_includes_project_and_truncates_logs(self) -> None:
        project = Project(name="web", github_url=REPO_URL, description="storefront", user_id="u1")
        logs = "x" * (MAX_LOG_CHARS + 100)

        prompt = GeminiAdvisor.build_suggestion_prompt("Build failed", logs, project)

        self.assertIn('"githubUrl": "https://github.com/octo/hello-world"', prompt)
        self.assertIn("(truncated)", prompt)
        self.assertNotIn("x" * (MAX_LOG_CHARS + 1), prompt)
        self.assertIn("Root cause analysis", prompt)

    def test_analysis_prompt_lists_commits(self) -> None:
        commits = [
            Commit(
                project_id="p1",
                sha="abc",
                message="Fix flaky build",
                author="Mona",
                date=datetime(2024, 5, 1, tzinfo=timezone.utc),
                url="https://github.com/octo/hello-world/commit/abc",
            )
        ]

        prompt = GeminiAdvisor.build_analysis_prompt(REPO_URL, commits)

        self.assertIn(f"Repository: {REPO_URL}", prompt)
        self.assertIn("- Fix flaky build (Mona)", prompt)

    def test_analysis_prompt_without_commits(self) -> None:
        prompt = GeminiAdvisor.build_analysis_prompt(REPO_URL, [])
        self.assertIn("(no commits recorded)", prompt)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
