"""
Tag Generator - Local, offline tagging for captured content.

Three passes, all of them always run:
1. File extension -> language/area tags
2. Content keywords -> topic tags
3. Framework signatures -> framework tags

The concatenation is deduplicated (first occurrence wins) and cut to 8.
This is also what the orchestrator falls back to when the store's own
tag service is unreachable, so it must never need the network or the
analyzer.
"""

import posixpath
from typing import Optional

MAX_TAGS = 8

EXTENSION_TAGS = {
    "js": ["javascript", "frontend"],
    "ts": ["typescript", "frontend"],
    "jsx": ["react", "javascript", "frontend"],
    "tsx": ["react", "typescript", "frontend"],
    "py": ["python", "backend"],
    "java": ["java", "backend"],
    "cs": ["csharp", "backend"],
    "cpp": ["cpp", "backend"],
    "c": ["c", "backend"],
    "go": ["golang", "backend"],
    "rs": ["rust", "backend"],
    "php": ["php", "backend"],
    "rb": ["ruby", "backend"],
    "css": ["css", "frontend", "styling"],
    "scss": ["sass", "css", "frontend", "styling"],
    "html": ["html", "frontend", "markup"],
    "sql": ["sql", "database"],
    "json": ["json", "config"],
    "yml": ["yaml", "config"],
    "yaml": ["yaml", "config"],
    "md": ["markdown", "documentation"],
    "dockerfile": ["docker", "devops"],
    "sh": ["bash", "scripting", "devops"],
}

CONTENT_TAGS = {
    "react": ["usestate", "useeffect", "jsx", "component"],
    "vue": ["vue", "v-if", "v-for", "@click"],
    "angular": ["@component", "@injectable", "ngoninit"],
    "nodejs": ["require(", "module.exports", "express"],
    "database": ["select", "insert", "update", "delete", "create table"],
    "api": ["fetch(", "axios", "http", "endpoint"],
    "testing": ["test(", "describe(", "expect(", "jest", "mocha"],
    "authentication": ["auth", "login", "password", "token", "jwt"],
    "security": ["hash", "encrypt", "decrypt", "secure"],
    "performance": ["optimize", "cache", "performance", "speed"],
    "error-handling": ["try", "catch", "error", "exception"],
    "async": ["async", "await", "promise", "settimeout"],
    "algorithms": ["sort", "search", "algorithm", "complexity"],
    "data-structures": ["array", "object", "map", "set", "list"],
}

FRAMEWORK_TAGS = {
    "express": ["express"],
    "fastify": ["fastify"],
    "koa": ["koa"],
    "nestjs": ["@nestjs"],
    "spring": ["@springbootapplication", "@restcontroller"],
    "django": ["django", "from django"],
    "flask": ["from flask"],
    "laravel": ["use illuminate"],
    "rails": ["rails.application"],
}


def file_extension(file_path: Optional[str]) -> str:
    """Lower-cased text after the last dot of the file name.

    A name without a dot is returned whole, so `Dockerfile` maps to
    `dockerfile`.
    """
    if not file_path:
        return ""
    name = posixpath.basename(file_path.replace("\\", "/"))
    return name.rsplit(".", 1)[-1].lower()


def _matching(table: dict, lowered: str) -> list:
    return [tag for tag, needles in table.items() if any(n in lowered for n in needles)]


def generate_tags(file_path: Optional[str], content: str) -> list:
    """Derive up to 8 unique tags from a file name and its content."""
    if content is None:
        raise TypeError("generate_tags() requires content, got None")

    lowered = content.lower()

    tags = list(EXTENSION_TAGS.get(file_extension(file_path), []))
    tags.extend(_matching(CONTENT_TAGS, lowered))
    tags.extend(_matching(FRAMEWORK_TAGS, lowered))

    # dict keeps first-seen order
    return list(dict.fromkeys(tags))[:MAX_TAGS]
