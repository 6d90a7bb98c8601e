# ──────────────────────────────────────────────────────────────────────────────
# File: services/context_builder.py
# Purpose: Pure prompt assembly for /api/generateContext.
#          • Truncates each uploaded file body to a fixed budget
#          • Pulls dependency names out of an uploaded package.json
#          • Renders the system/user prompts and the fallback context file
#
# Notes
#   • No I/O here; the route decodes uploads into SourceFile first.
#   • Upload order is preserved everywhere (prompt + fallback fileStructure).
# ──────────────────────────────────────────────────────────────────────────────

from __future__ import annotations

import json
import posixpath
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Sequence

from core.logging import log_event

MAX_FILE_CHARS = 2000
ELLIPSIS = "..."
PACKAGE_JSON = "package.json"
NO_DEPENDENCIES = "No dependencies found or package.json not provided."

CONTEXT_KEYS = ("projectSummary", "techStack", "dependencies", "fileStructure", "coreLogic")

SYSTEM_PROMPT = (
    "You are a helpful assistant that generates project context files in JSON format. "
    "Always respond with valid JSON only."
)

_USER_PROMPT_TEMPLATE = """
You are an AI assistant specialized in generating project context files for other AIs.
Given a project description and the contents of its codebase files, generate a comprehensive JSON object.

The JSON object should have the following structure:
{{
  "projectSummary": "A brief summary of the project.",
  "techStack": "Key technologies used (e.g., Next.js, React, Tailwind CSS, Node.js, Express, MongoDB).",
  "dependencies": "A comma-separated list of all dependencies from package.json.",
  "fileStructure": "A summary of the project's file structure and the role of important files.",
  "coreLogic": "A description of the main data flow, key functions, and how different parts of the application interact."
}}

Here is the user's project description:
"{description}"

Here are the dependencies found: {dependencies}

Here are the codebase files:
{file_section}

Please ensure your response is ONLY the JSON object, and nothing else. Make sure it's valid JSON.
    """


@dataclass(frozen=True)
class SourceFile:
    """One uploaded file, already decoded to text."""
    filename: str
    content: str

    @classmethod
    def from_bytes(cls, filename: str, data: bytes) -> "SourceFile":
        return cls(filename=filename, content=data.decode("utf-8", errors="replace"))

    @property
    def basename(self) -> str:
        return posixpath.basename(self.filename.replace("\\", "/"))


def truncate_content(content: str, limit: int = MAX_FILE_CHARS) -> str:
    """First `limit` chars; '...' appended only when something was cut."""
    if len(content) > limit:
        return content[:limit] + ELLIPSIS
    return content


def extract_dependencies(files: Iterable[SourceFile]) -> str:
    """
    Comma-separated dependency names from the uploaded package.json.

    The last package.json wins when several were uploaded. A package.json
    that fails to parse is logged and treated as absent.
    """
    package: Dict[str, Any] = {}
    for f in files:
        if f.basename != PACKAGE_JSON:
            continue
        try:
            parsed = json.loads(f.content)
        except (ValueError, RecursionError) as e:
            log_event("package_json_invalid", {"filename": f.filename, "error": str(e)})
            continue
        package = parsed if isinstance(parsed, dict) else {}

    deps = package.get("dependencies")
    if not isinstance(deps, dict):
        return NO_DEPENDENCIES
    return ", ".join(deps.keys())


def build_file_section(files: Sequence[SourceFile], limit: int = MAX_FILE_CHARS) -> str:
    return "\n".join(
        f"File: {f.filename}\nContent:\n{truncate_content(f.content, limit)}\n---"
        for f in files
    )


def build_prompt(description: str, dependencies: str, file_section: str) -> str:
    return _USER_PROMPT_TEMPLATE.format(
        description=description,
        dependencies=dependencies,
        file_section=file_section,
    )


def fallback_context(description: str, dependencies: str, files: Sequence[SourceFile]) -> Dict[str, str]:
    """Hand-built context file used when the model reply is not a JSON object."""
    return {
        "projectSummary": description,
        "techStack": "Unable to determine from provided files",
        "dependencies": dependencies,
        "fileStructure": ", ".join(f.filename for f in files),
        "coreLogic": "Unable to analyze from provided files",
    }
