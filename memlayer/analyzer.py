"""
Content Analyzer - Turns raw text into signals.

Everything here is deterministic keyword and regex matching:
1. Pattern flags ("does this look like error handling?", "an API call?")
2. Domain keywords from a fixed vocabulary
3. Identifier-shaped tokens (capped, so comparisons stay cheap)
4. A rough complexity class
5. Intent labels derived from the flags and a few high-value keywords

Same text in, same SignalSet out. No I/O, no hidden state.
"""

import re
from typing import Optional, Sequence

from memlayer.models import Complexity, ContextWindow, PatternFlags, SignalSet


# =============================================================================
# DICTIONARIES
# =============================================================================

# Flags judged against the cursor line when one is known
LINE_PATTERNS = {
    "function_definition": re.compile(r"function\s+\w+|const\s+\w+\s*=|def\s+\w+|class\s+\w+", re.IGNORECASE),
    "method_call": re.compile(r"\.\w+\(|\w+\s*\(", re.IGNORECASE),
}

# Flags judged against the whole window
CONTENT_PATTERNS = {
    "error_handling": re.compile(r"try|catch|except|error|throw", re.IGNORECASE),
    "api_call": re.compile(r"fetch|axios|http|api|endpoint|request", re.IGNORECASE),
    "data_query": re.compile(r"select|insert|update|delete|query|sql", re.IGNORECASE),
    "testing": re.compile(r"test|spec|describe|it\(|expect", re.IGNORECASE),
    "auth": re.compile(r"auth|login|token|jwt|password|session", re.IGNORECASE),
    "performance": re.compile(r"optimize|performance|cache|speed|async|await", re.IGNORECASE),
    "ui": re.compile(r"component|render|usestate|useeffect|onclick|event", re.IGNORECASE),
    "config": re.compile(r"config|setting|env|environment|variable", re.IGNORECASE),
}

# Flag -> intent label, in declaration order
FLAG_INTENTS = (
    ("function_definition", "function-definition"),
    ("method_call", "method-call"),
    ("error_handling", "error-handling"),
    ("api_call", "api-integration"),
    ("data_query", "data-persistence"),
    ("testing", "testing"),
    ("auth", "authentication"),
    ("performance", "optimization"),
    ("ui", "user-interface"),
    ("config", "configuration"),
)

# Keywords that add an intent of the same name
KEYWORD_INTENTS = ("algorithm", "security", "performance")

DOMAIN_KEYWORDS = (
    "function", "class", "method", "variable", "array", "object", "string", "number",
    "async", "await", "promise", "callback", "event", "handler", "listener",
    "component", "service", "controller", "model", "view", "router",
    "database", "query", "api", "endpoint", "request", "response",
    "authentication", "authorization", "security", "encryption",
    "optimization", "performance", "cache", "memory", "algorithm",
    "testing", "debugging", "logging", "monitoring", "error",
)

STOP_IDENTIFIERS = frozenset({
    "if", "else", "for", "while", "do", "try", "catch",
    "class", "function", "var", "let", "const",
})

MAX_IDENTIFIERS = 10
MIN_IDENTIFIER_LENGTH = 3

JS_IDENTIFIER = re.compile(r"(?<![A-Za-z0-9_$])[A-Za-z_$][A-Za-z0-9_$]*")
IDENTIFIER = re.compile(r"\b[A-Za-z_][A-Za-z0-9_]*\b")
JS_LANGUAGES = frozenset({"javascript", "typescript", "javascriptreact", "typescriptreact"})

BRANCH_PATTERN = re.compile(r"if|else|switch|case|while|for")
DEFINITION_PATTERN = re.compile(r"function|def|class|=>")

# Complexity thresholds (score below -> class)
LOW_COMPLEXITY_BELOW = 20
MEDIUM_COMPLEXITY_BELOW = 50


# =============================================================================
# ANALYSIS
# =============================================================================

def analyze(text: str, language: Optional[str] = None, focus_line: Optional[str] = None) -> SignalSet:
    """Extract the signal set for a piece of text.

    Args:
        text: The context window (or any captured content)
        language: Editor language id, picks the identifier pattern
        focus_line: The cursor line, if known. Function-definition and
            method-call flags describe where the cursor is, so they are
            tested against this line instead of the whole text.

    Returns:
        SignalSet
    """
    if text is None:
        raise TypeError("analyze() requires text, got None")

    patterns = detect_patterns(text, focus_line)
    keywords = extract_keywords(text)
    return SignalSet(
        keywords=keywords,
        identifiers=extract_identifiers(text, language),
        patterns=patterns,
        complexity=classify_complexity(text),
        intents=detect_intents(patterns, keywords),
    )


def analyze_context(context: ContextWindow) -> SignalSet:
    """Analyze the window around the cursor, honouring its focus line.

    A selection only narrows what is sent to the store; the signals come
    from the whole window when there is one.
    """
    return analyze(context.full_context or context.content, context.language, context.focus_line)


def detect_patterns(text: str, focus_line: Optional[str] = None) -> PatternFlags:
    line = text if focus_line is None else focus_line
    flags = {name: bool(pattern.search(line)) for name, pattern in LINE_PATTERNS.items()}
    lowered = text.lower()
    for name, pattern in CONTENT_PATTERNS.items():
        flags[name] = bool(pattern.search(lowered))
    return PatternFlags(**flags)


def extract_keywords(text: str) -> tuple:
    """Domain keywords present anywhere in the text, in vocabulary order."""
    lowered = text.lower()
    return tuple(keyword for keyword in DOMAIN_KEYWORDS if keyword in lowered)


def extract_identifiers(text: str, language: Optional[str] = None) -> tuple:
    """First 10 distinct identifier-like tokens, skipping short ones and keywords."""
    pattern = JS_IDENTIFIER if (language or "").lower() in JS_LANGUAGES else IDENTIFIER

    seen = set()
    identifiers = []
    for token in pattern.findall(text):
        if token in seen:
            continue
        seen.add(token)
        if len(token) < MIN_IDENTIFIER_LENGTH or token.lower() in STOP_IDENTIFIERS:
            continue
        identifiers.append(token)
        if len(identifiers) == MAX_IDENTIFIERS:
            break
    return tuple(identifiers)


def complexity_score(text: str) -> int:
    lines = len(text.split("\n"))
    branches = len(BRANCH_PATTERN.findall(text))
    definitions = len(DEFINITION_PATTERN.findall(text))
    return lines + branches * 2 + definitions * 3


def classify_complexity(text: str) -> Complexity:
    score = complexity_score(text)
    if score < LOW_COMPLEXITY_BELOW:
        return Complexity.LOW
    if score < MEDIUM_COMPLEXITY_BELOW:
        return Complexity.MEDIUM
    return Complexity.HIGH


def detect_intents(patterns: PatternFlags, keywords: Sequence[str]) -> tuple:
    intents = [label for flag, label in FLAG_INTENTS if getattr(patterns, flag)]
    intents.extend(keyword for keyword in KEYWORD_INTENTS if keyword in keywords)
    return tuple(intents)


# =============================================================================
# CONTEXT WINDOW
# =============================================================================

def extract_context(
    lines: Sequence[str],
    cursor_line: int,
    selection: Optional[str] = None,
    file_path: Optional[str] = None,
    language: Optional[str] = None,
    radius: int = 10,
) -> ContextWindow:
    """Cut the window of `radius` lines around the cursor out of a document.

    The selection, when there is one, becomes the content; the window is kept
    as `full_context` either way.
    """
    if lines is None:
        raise TypeError("extract_context() requires document lines, got None")

    if not lines:
        return ContextWindow(content=selection or "", selection=selection or "",
                             file_path=file_path, language=language, line=cursor_line)

    cursor_line = max(0, min(cursor_line, len(lines) - 1))
    start = max(0, cursor_line - radius)
    end = min(len(lines) - 1, cursor_line + radius)
    window = "\n".join(lines[start:end + 1])

    return ContextWindow(
        content=selection or window,
        selection=selection or "",
        full_context=window,
        file_path=file_path,
        language=language,
        line=cursor_line,
        focus_line=lines[cursor_line],
    )
