"""
Regular expressions used in generated relabel configurations.

Prometheus evaluates relabel regexes with RE2 and anchors them at both ends.
A ``Regexp`` keeps the source text (which is what ends up in the YAML
document) next to a compiled pattern that is always matched against the
whole value, and rejects Python-only syntax RE2 cannot parse.
"""

import re
from dataclasses import dataclass, field


# Group openers Python accepts but RE2 does not
UNSUPPORTED_GROUPS = {
    "(?=": "lookahead",
    "(?!": "negative lookahead",
    "(?<=": "lookbehind",
    "(?<!": "negative lookbehind",
    "(?>": "atomic group",
    "(?P=": "named backreference",
    "(?(": "conditional group",
    "(?#": "comment group",
}


def check_re2_syntax(source: str):
    """
    Reject constructs RE2 does not support.

    Raises:
        re.error: On lookaround, backreferences, atomic groups, conditionals
            or possessive quantifiers
    """
    i = 0
    in_class = False
    after_quantifier = False

    while i < len(source):
        ch = source[i]

        if ch == "\\":
            escaped = source[i + 1:i + 2]
            if not in_class and escaped.isdigit() and escaped != "0":
                raise re.error("backreferences are not supported by RE2", source, i)
            i += 2
            after_quantifier = False
            continue

        if in_class:
            if ch == "]":
                in_class = False
            i += 1
            continue

        if ch == "[":
            in_class = True
            i += 1
            # A leading ']' (after an optional '^') is literal
            if source[i:i + 1] == "^":
                i += 1
            if source[i:i + 1] == "]":
                i += 1
            after_quantifier = False
            continue

        if ch == "(":
            for prefix, name in UNSUPPORTED_GROUPS.items():
                if source.startswith(prefix, i):
                    raise re.error(f"{name} is not supported by RE2", source, i)
            i += 2 if source.startswith("(?", i) else 1
            after_quantifier = False
            continue

        if ch == "+" and after_quantifier:
            raise re.error("possessive quantifiers are not supported by RE2", source, i)

        after_quantifier = ch in "*+?}"
        i += 1


@dataclass(frozen=True)
class Regexp:
    """A relabel regex with Prometheus matching semantics."""

    source: str
    compiled: re.Pattern = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        # Raises re.error for an invalid expression
        check_re2_syntax(self.source)
        object.__setattr__(self, "compiled", re.compile(self.source))

    @classmethod
    def compile(cls, source: str) -> "Regexp":
        """Compile a pattern, raising ``re.error`` if it is invalid."""
        return cls(source)

    def matches(self, value: str) -> bool:
        """Check whether the whole of ``value`` matches."""
        return self.compiled.fullmatch(value) is not None

    def __str__(self) -> str:
        return self.source


@dataclass(frozen=True)
class RenderPatterns:
    """
    Fixed patterns shared by every render call.

    Attributes:
        true: Matches the literal scrape annotation value "true"
        all_match: Captures any non-empty value
        port: Splits ``host[:port];annotated_port`` into host and port groups
        tikv: Matches pod names of TiKV stores (``<cluster>-tikv-<ordinal>``)
    """

    true: Regexp
    all_match: Regexp
    port: Regexp
    tikv: Regexp

    @classmethod
    def compile(cls) -> "RenderPatterns":
        return cls(
            true=Regexp.compile("true"),
            all_match=Regexp.compile("(.+)"),
            port=Regexp.compile(r"([^:]+)(?::\d+)?;(\d+)"),
            tikv=Regexp.compile(r".*\-tikv\-\d*$"),
        )


# Compiled once at import; a broken literal aborts startup.
DEFAULT_PATTERNS = RenderPatterns.compile()
