"""Built-in phase prompts and placeholder substitution."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_PHASE_PROMPTS: dict[str, str] = {
    "research": "\n".join(
        [
            "Research context for Issue #{number}: {title}",
            "URL: {url}",
            "",
            "Explore the codebase and gather context that would help brainstorm this issue.",
            "Write a short research summary to docs/research/{slug}.md.",
            "Do NOT implement anything. Just gather information.",
        ]
    ),
    "brainstorm": "\n".join(
        ["Let's brainstorm Issue #{number}: {title}", "URL: {url}", "", "{body}"]
    ),
    "plan": "\n".join(
        [
            "Create an implementation plan for Issue #{number}: {title}",
            "URL: {url}",
            "",
            "If a brainstorm doc exists in docs/brainstorms/, use it as context.",
            "Write the plan to docs/plans/.",
        ]
    ),
    "implement": "\n".join(
        [
            "Implement Issue #{number}: {title}",
            "URL: {url}",
            "",
            "If a plan exists in docs/plans/, follow it.",
            "Commit frequently. Create a PR when done.",
        ]
    ),
    "review": "\n".join(
        [
            "Review the changes for Issue #{number}: {title}",
            "URL: {url}",
            "",
            "Check the current branch diff against main.",
            "Run tests and linting.",
            "Write a review summary.",
        ]
    ),
    "compound": "\n".join(
        [
            "Document the solution for Issue #{number}: {title}",
            "URL: {url}",
            "",
            "Write a solution document to docs/solutions/.",
            "Include: symptoms, root cause, solution, prevention.",
        ]
    ),
}


@dataclass(frozen=True, slots=True)
class PromptVariables:
    """Optional placeholder values beyond the issue's number, title and url."""

    body: str = ""
    slug: str = ""
    phase: str = ""
    repo: str = ""


def build_prompt(
    number: int,
    title: str,
    url: str,
    template: str | None = None,
    variables: PromptVariables | None = None,
) -> str:
    """Substitute issue fields into ``template``.

    Substitution is purely textual and every occurrence is replaced; no
    escaping is applied to the inserted values.
    """

    if not template:
        return f"Issue #{number}: {title}\nURL: {url}"

    extra = variables or PromptVariables()
    replacements = {
        "{number}": str(number),
        "{title}": title,
        "{url}": url,
        "{body}": extra.body,
        "{slug}": extra.slug,
        "{phase}": extra.phase,
        "{repo}": extra.repo,
    }
    prompt = template
    for placeholder, value in replacements.items():
        prompt = prompt.replace(placeholder, value)
    return prompt


def resolve_template(
    phase: str,
    number: int,
    title: str,
    *,
    explicit: str | None = None,
    overrides: dict[str, str] | None = None,
) -> str:
    """Pick the template for ``phase``: caller, configured, built-in, then a fallback."""

    if explicit:
        return explicit
    if overrides and phase in overrides:
        return overrides[phase]
    if phase in DEFAULT_PHASE_PROMPTS:
        return DEFAULT_PHASE_PROMPTS[phase]
    return f"Issue #{number}: {title}"


__all__ = ["DEFAULT_PHASE_PROMPTS", "PromptVariables", "build_prompt", "resolve_template"]
