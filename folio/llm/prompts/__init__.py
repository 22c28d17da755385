"""
Prompt Management Module

Loads the responder prompt and the per-request-type instructions from text
files next to this module, so wording can change without touching code.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

PROMPTS_DIR = Path(__file__).parent

REQUEST_TYPES = ("resume", "contact", "access_request")


class PromptLoader:
    """Load and cache prompt templates from files"""

    def __init__(self, prompts_dir: Path = PROMPTS_DIR):
        self.prompts_dir = prompts_dir
        self._cache: dict[str, str] = {}

    def load_prompt(self, prompt_name: str) -> str:
        """
        Load a prompt template from file.

        Args:
            prompt_name: Name of the prompt file (without .txt extension)

        Returns:
            Prompt template string
        """
        if prompt_name not in self._cache:
            prompt_path = self.prompts_dir / f"{prompt_name}.txt"

            if not prompt_path.exists():
                raise FileNotFoundError(f"Prompt file not found: {prompt_path}")

            self._cache[prompt_name] = prompt_path.read_text(encoding="utf-8")

        return self._cache[prompt_name]

    def get_instructions(self, request_type: str, owner_name: str) -> str:
        """Instructions for a request type; unknown types get the access-request tone."""
        if request_type not in REQUEST_TYPES:
            request_type = "access_request"
        return self.load_prompt(f"{request_type}_instructions").format(owner_name=owner_name)

    def get_responder_prompt(
        self,
        *,
        owner_name: str,
        profile: str,
        projects: list[dict[str, Any]],
        name: str,
        company: str | None,
        request_type: str,
        message: str,
        received_at: str,
    ) -> str:
        """
        Full prompt for drafting a reply.

        Args:
            owner_name: Whose voice the reply is written in
            profile: Free-text owner profile
            projects: Projects visible at the requester's level
            name: Requester name
            company: Requester company, if given
            request_type: resume / contact / access_request
            message: Requester message
            received_at: ISO timestamp of the request

        Returns:
            Formatted prompt string
        """
        template = self.load_prompt("responder_prompt")
        return template.format(
            instructions=self.get_instructions(request_type, owner_name),
            owner_name=owner_name,
            profile=profile,
            projects=json.dumps(projects, ensure_ascii=False),
            name=name,
            company=company or "Not specified",
            request_type=request_type,
            message=message,
            received_at=received_at,
        )


_loader = PromptLoader()


def get_responder_prompt(**kwargs: Any) -> str:
    return _loader.get_responder_prompt(**kwargs)
