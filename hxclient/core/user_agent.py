"""User-Agent header value, as defined in RFC 7231 section 5.5.3."""

from dataclasses import dataclass, field
from typing import List

from hxclient import build

_PYTHON_CLIENT_COMMENT = "python-httpx"


@dataclass
class UserAgent:
    """Product token, version and optional comments.

    Rendered as ``token/version (comment1; comment2)``.
    """

    token: str
    version: str
    comments: List[str] = field(default_factory=list)

    @classmethod
    def default(cls) -> "UserAgent":
        return cls(
            token=build.NAME,
            version=build.VERSION,
            comments=[build.USER_AGENT_URL, _PYTHON_CLIENT_COMMENT],
        )

    def __str__(self) -> str:
        if not self.token or not self.version:
            return ""

        value = f"{self.token}/{self.version}"
        if self.comments:
            # Parentheses would break the comment syntax
            cleaned = [c.replace("(", "").replace(")", "") for c in self.comments]
            value += " (" + "; ".join(cleaned) + ")"
        return value
