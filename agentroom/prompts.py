"""Prompt templates for remote utterance generation."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Mapping

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


@dataclass
class PromptTemplate:
    """Represents a templated prompt with ``{{placeholder}}`` markers."""

    name: str
    system: str
    user: str
    description: str = ""


@dataclass
class RenderedPrompt:
    system: str
    user: str


class PromptLibrary:
    """Container for named prompt templates."""

    def __init__(self) -> None:
        self.templates: Dict[str, PromptTemplate] = {}

    def register(self, template: PromptTemplate) -> None:
        self.templates[template.name] = template

    def get(self, name: str) -> PromptTemplate:
        return self.templates[name]


def render_template(template: PromptTemplate, values: Mapping[str, str]) -> RenderedPrompt:
    """Substitute ``{{key}}`` placeholders in both prompt sections.

    Each section is scanned once, so placeholder syntax inside a substituted
    value (a backstory or transcript line) is left as written. Unknown
    placeholders are left untouched.
    """

    def _replace(match: re.Match) -> str:
        key = match.group(1)
        return str(values[key]) if key in values else match.group(0)

    return RenderedPrompt(
        system=_PLACEHOLDER.sub(_replace, template.system),
        user=_PLACEHOLDER.sub(_replace, template.user),
    )


DEFAULT_PROMPTS = PromptLibrary()

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="initiate",
        system=(
            "You write a single line of dialogue for a character in a social simulation. "
            "Stay in character, keep it under 40 words, and never narrate actions. "
            "Respond with JSON matching the schema {\"content\": \"<the line>\"}."
        ),
        user=(
            "Speaker: {{speaker_name}} ({{speaker_role}})\n"
            "Personality: {{speaker_traits}}\n"
            "Background: {{speaker_backstory}}\n\n"
            "They just bumped into {{listener_name}} ({{listener_role}}).\n"
            "Relationship score toward {{listener_name}}: {{relationship_score}} ({{relationship_label}}).\n"
            "The line must sound {{tone}}.\n\n"
            "Recent conversation between them (oldest first):\n{{transcript}}\n\n"
            "Return JSON only."
        ),
        description="Opening line when two agents collide.",
    )
)

DEFAULT_PROMPTS.register(
    PromptTemplate(
        name="respond",
        system=(
            "You write a single line of dialogue for a character in a social simulation who is replying "
            "to someone. Stay in character, keep it under 40 words, and never narrate actions. "
            "Respond with JSON matching the schema {\"content\": \"<the line>\"}."
        ),
        user=(
            "Speaker: {{speaker_name}} ({{speaker_role}})\n"
            "Personality: {{speaker_traits}}\n"
            "Background: {{speaker_backstory}}\n\n"
            "{{listener_name}} ({{listener_role}}) just spoke to them in a {{initial_tone}} way.\n"
            "Relationship score toward {{listener_name}}: {{relationship_score}} ({{relationship_label}}).\n"
            "The reply must sound {{tone}}.\n\n"
            "Recent conversation between them (oldest first):\n{{transcript}}\n\n"
            "Return JSON only."
        ),
        description="Reply from the responder after the response delay.",
    )
)


__all__ = ["PromptTemplate", "PromptLibrary", "RenderedPrompt", "render_template", "DEFAULT_PROMPTS"]
