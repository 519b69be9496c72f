"""System prompts for commit messages and pull request text."""

COMMIT = """Generate a commit message from this diff.
Format: <type>(<scope>): <description>
Types: feat|fix|docs|refactor|test|chore
Rules: lowercase, imperative mood, max 50 chars, no period
Output ONLY the message."""

PR_TITLE = """Generate a PR title from this diff.
Format: <type>(<scope>): <description>
Types: feat|fix|docs|refactor|test|chore
Rules: lowercase, imperative mood, max 50 chars
Output ONLY the title."""

PR_BODY = """Generate a PR description from this diff.
Format:
## Summary
<1-2 sentences>

## Changes
<bullet points>

Be concise. Output ONLY the description."""


def clean_single_line(text: str) -> str:
    """First non-empty line, without code fences or surrounding quotes, lowercased."""
    for line in (text or "").splitlines():
        stripped = line.strip().strip("`").strip()
        if len(stripped) >= 2 and stripped[0] == stripped[-1] and stripped[0] in "\"'":
            stripped = stripped[1:-1].strip()
        if stripped:
            return stripped.lower()
    return ""
