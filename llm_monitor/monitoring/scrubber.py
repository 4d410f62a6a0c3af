"""
Content Scrubber - redacts sensitive data from monitoring payloads

Rules are applied in a fixed order:
1. Built-in PII patterns (email, phone, SSN, credit card, IPv4, date of birth)
2. Built-in secret patterns (provider API keys, bearer tokens, key=value
   assignments, AWS access keys, GitHub tokens, PEM private keys)
3. Caller-supplied custom patterns

The scrubber never raises: unexpected shapes come back unchanged.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Pattern, Tuple, Union

CIRCULAR_MARKER = "[Circular]"
DEFAULT_MASK = "[REDACTED]"

PII_PATTERNS: List[Tuple[str, Pattern]] = [
    ("email", re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Z|a-z]{2,}\b")),
    ("phone", re.compile(r"\b(?:\+?1[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b")),
    ("ssn", re.compile(r"\b\d{3}[-\s]?\d{2}[-\s]?\d{4}\b")),
    ("credit_card", re.compile(r"\b(?:\d{4}[-\s]?){3}\d{4}\b")),
    ("ip_address", re.compile(r"\b\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}\b")),
    ("dob", re.compile(r"\b(?:0?[1-9]|1[0-2])[-/](?:0?[1-9]|[12]\d|3[01])[-/](?:19|20)\d{2}\b")),
]

SECRET_PATTERNS: List[Tuple[str, Pattern]] = [
    ("openai_key", re.compile(r"\b(sk-[a-zA-Z0-9]{20,})\b")),
    ("openai_project_key", re.compile(r"\b(sk-proj-[a-zA-Z0-9_-]{20,})\b")),
    ("anthropic_key", re.compile(r"\b(sk-ant-[a-zA-Z0-9_-]{20,})\b")),
    ("google_api_key", re.compile(r"\b(AIza[a-zA-Z0-9_-]{35})\b")),
    ("bearer_token", re.compile(r"Bearer\s+[a-zA-Z0-9_-]{20,}", re.IGNORECASE)),
    ("api_key", re.compile(r"\b(api[_-]?key)[=:]\s*[\"']?([a-zA-Z0-9_-]{16,})[\"']?", re.IGNORECASE)),
    ("aws_access_key", re.compile(r"\b(AKIA[0-9A-Z]{16})\b")),
    ("github_token", re.compile(r"\b(gh[pousr]_[a-zA-Z0-9]{36,})\b")),
    ("private_key", re.compile(r"-----BEGIN\s+(?:RSA\s+)?PRIVATE\s+KEY-----[\s\S]*?-----END")),
]


@dataclass(frozen=True)
class CustomPattern:
    """Caller-supplied redaction rule"""
    pattern: Union[str, Pattern]
    replacement: Optional[str] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class ScrubbingConfig:
    """
    Immutable scrubbing configuration

    exclude_fields names keys whose values are replaced wholesale by
    mask_with, whatever their content.
    """
    pii: bool = True
    secrets: bool = True
    custom_patterns: Tuple[CustomPattern, ...] = field(default_factory=tuple)
    exclude_fields: Tuple[str, ...] = field(default_factory=tuple)
    mask_with: str = DEFAULT_MASK


@dataclass(frozen=True)
class ScrubRule:
    name: str
    pattern: Pattern
    replacement: str


def _literal(text: str) -> str:
    """Escape a mask so re.sub inserts it verbatim"""
    return text.replace("\\", "\\\\")


class ContentScrubber:
    """
    Content Scrubber - pattern-based redaction for strings, objects and
    chat message lists

    Usage:
        scrubber = ContentScrubber()
        scrubber.scrub_string("Contact me at john.doe@example.com")
        # -> "Contact me at [EMAIL]"
    """

    def __init__(self, config: Optional[ScrubbingConfig] = None):
        """
        Initialize ContentScrubber

        Args:
            config: Scrubbing configuration (PII and secrets enabled if None)
        """
        self.config = config or ScrubbingConfig()
        self.rules: List[ScrubRule] = []

        if self.config.pii:
            self.rules.extend(
                ScrubRule(name, pattern, f"[{name.upper()}]") for name, pattern in PII_PATTERNS
            )

        if self.config.secrets:
            self.rules.extend(
                ScrubRule(name, pattern, f"[{name.upper()}]") for name, pattern in SECRET_PATTERNS
            )

        for custom in self.config.custom_patterns:
            pattern = custom.pattern
            if isinstance(pattern, str):
                pattern = re.compile(pattern)
            replacement = (
                custom.replacement
                if custom.replacement is not None
                else _literal(self.config.mask_with)
            )
            self.rules.append(ScrubRule(custom.name or "custom", pattern, replacement))

    @property
    def exclude_fields(self) -> Tuple[str, ...]:
        return self.config.exclude_fields

    def scrub_string(self, text: Any) -> Any:
        """
        Replace every match of every rule, in rule order

        Non-string values (including None) are returned unchanged.
        """
        if not text or not isinstance(text, str):
            return text

        result = text
        for rule in self.rules:
            result = rule.pattern.sub(rule.replacement, result)
        return result

    def scrub_object(self, obj: Any) -> Any:
        """
        Deep, structure-preserving scrub of mappings and lists

        Containers met twice during one traversal are replaced by
        CIRCULAR_MARKER. Callables are dropped.
        """
        if not isinstance(obj, (dict, list, tuple)):
            return obj
        return self._scrub_container(obj, set())

    def _scrub_container(self, obj: Any, seen: set) -> Any:
        if id(obj) in seen:
            return CIRCULAR_MARKER
        seen.add(id(obj))

        if isinstance(obj, dict):
            scrubbed = {}
            for key, value in obj.items():
                if key in self.config.exclude_fields:
                    scrubbed[key] = self.config.mask_with
                    continue
                if callable(value):
                    continue
                scrubbed[key] = self._scrub_value(value, seen)
            return scrubbed

        items = [self._scrub_value(item, seen) for item in obj if not callable(item)]
        return tuple(items) if isinstance(obj, tuple) else items

    def _scrub_value(self, value: Any, seen: set) -> Any:
        if isinstance(value, str):
            return self.scrub_string(value)
        if isinstance(value, (dict, list, tuple)):
            return self._scrub_container(value, seen)
        return value

    def scrub_messages(self, messages: Any) -> Any:
        """
        Scrub a chat-style message list

        Only `content` is touched: string content is scrubbed, list content
        has string parts scrubbed and only the `text` field of typed parts
        scrubbed. Everything else passes through.
        """
        if not isinstance(messages, list):
            return messages
        return [self._scrub_message(message) for message in messages]

    def _scrub_message(self, message: Any) -> Any:
        if not isinstance(message, dict):
            return message

        scrubbed = dict(message)
        content = scrubbed.get("content")

        if isinstance(content, str):
            scrubbed["content"] = self.scrub_string(content)
        elif isinstance(content, list):
            scrubbed["content"] = [self._scrub_part(part) for part in content]

        return scrubbed

    def _scrub_part(self, part: Any) -> Any:
        if isinstance(part, str):
            return self.scrub_string(part)
        if isinstance(part, dict) and isinstance(part.get("text"), str) and part["text"]:
            return {**part, "text": self.scrub_string(part["text"])}
        return part


def create_scrubber(
    pii: bool = True,
    secrets: bool = True,
    custom_patterns: Iterable[CustomPattern] = (),
    exclude_fields: Iterable[str] = (),
    mask_with: str = DEFAULT_MASK,
) -> ContentScrubber:
    """Create a content scrubber from keyword options"""
    return ContentScrubber(
        ScrubbingConfig(
            pii=pii,
            secrets=secrets,
            custom_patterns=tuple(custom_patterns),
            exclude_fields=tuple(exclude_fields),
            mask_with=mask_with,
        )
    )


__all__ = [
    "CIRCULAR_MARKER",
    "DEFAULT_MASK",
    "PII_PATTERNS",
    "SECRET_PATTERNS",
    "CustomPattern",
    "ScrubbingConfig",
    "ContentScrubber",
    "create_scrubber",
]
