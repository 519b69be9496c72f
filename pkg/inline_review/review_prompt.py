"""Per-file inline review prompt.

The prompt lists the only line numbers a comment may use, so most model
output survives validation. The file's diff itself is sent as the context
argument of the AI call, not embedded here.
"""

from __future__ import annotations

import html
import re

from .candidates import NO_ISSUES_SENTINEL
from .diff_parser import ADDED, CONTEXT, DiffLine

TOKEN_RE = re.compile(r"\{\{[A-Z0-9_]+\}\}")

MAX_ADDED_PREVIEWS = 15
MAX_CONTEXT_PREVIEWS = 8
ADDED_PREVIEW_CHARS = 120
CONTEXT_PREVIEW_CHARS = 80

INLINE_REVIEW_TEMPLATE = """\
Code review for: <file_path>{{FILE_PATH}}</file_path>

VALID LINE NUMBERS (only these may be used):
{{VALID_LINE_NUMBERS}}

NEWLY ADDED CODE (primary focus):
{{ADDED_PREVIEW}}

SURROUNDING CONTEXT (reference only):
{{CONTEXT_PREVIEW}}

Look for, in priority order:
1. Security: input validation, injection, auth bypass, secrets in logs, path traversal.
2. Performance: N+1 queries, needless quadratic work, blocking calls in async code.
3. Reliability: missing error handling, null checks, resource cleanup, races.
4. Quality: overly complex functions, duplication, unclear names, magic numbers.
5. Standards: idioms and conventions of the language and framework in use.

Output one issue per line, exactly in this format:
LINE_NUMBER:ICON Category: specific issue | actionable solution

Icons: 🔐 Security, ⚡ Performance, 🛡️ Reliability, 🧹 Quality, 📋 Standards

Example:
42:🔐 Security: Unvalidated user input in SQL query | Use parameterized queries

Rules:
- Only use line numbers from the VALID LINE NUMBERS list.
- At most {{MAX_COMMENTS}} comments for this file; keep each under 100 characters.
- Reference actual names from the code and give a concrete fix.
- If there is nothing worth commenting on, respond with exactly: {{NO_ISSUES_SENTINEL}}
"""


def escape_untrusted(text: str) -> str:
    """Escape file-controlled text so it cannot break out of prompt tags."""
    return html.escape(text or "", quote=False)


def _preview(lines: list[DiffLine], kind: str, limit: int, width: int) -> str:
    rows: list[str] = []
    for line in lines:
        if line.kind != kind:
            continue
        if len(rows) >= limit:
            break
        rows.append(f"    Line {line.new_line_number}: {line.content[:width]}")
    return "\n".join(rows) or "    (none)"


def render_inline_review_prompt(
    *,
    file_path: str,
    lines: list[DiffLine],
    line_limit: int = 25,
    max_comments: int | None = 8,
    sentinel: str = NO_ISSUES_SENTINEL,
    template_text: str = INLINE_REVIEW_TEMPLATE,
) -> str:
    numbers = sorted(
        {line.new_line_number for line in lines if line.new_line_number is not None}
    )[:line_limit]

    replacements = {
        "{{FILE_PATH}}": escape_untrusted(file_path),
        "{{VALID_LINE_NUMBERS}}": "\n".join(str(n) for n in numbers),
        "{{ADDED_PREVIEW}}": _preview(lines, ADDED, MAX_ADDED_PREVIEWS, ADDED_PREVIEW_CHARS),
        "{{CONTEXT_PREVIEW}}": _preview(lines, CONTEXT, MAX_CONTEXT_PREVIEWS, CONTEXT_PREVIEW_CHARS),
        "{{MAX_COMMENTS}}": str(max_comments) if max_comments else "a handful of",
        "{{NO_ISSUES_SENTINEL}}": sentinel,
    }

    def replace_token(match: re.Match[str]) -> str:
        token = match.group(0)
        return replacements.get(token, token)

    return TOKEN_RE.sub(replace_token, template_text)
