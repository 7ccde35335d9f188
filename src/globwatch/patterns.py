"""Glob classification and the negation-aware ignore predicate.

A pattern list such as ``["src/**", "!src/generated/**", "src/generated/keep.js"]``
is split into a watch-set (the positive globs handed to the watcher) and an
ignore predicate that decides, per path, whether a negation cancels it.

Order matters: when a path matches both a positive and a negative glob, the
one authored later in the list wins.
"""

import logging
import os
import posixpath
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from wcmatch import glob

logger = logging.getLogger(__name__)

NEGATION_MARKER = "!"

# Braces, extglobs and globstar; wildcards skip dotfiles.
GLOB_FLAGS = glob.GLOBSTAR | glob.BRACE | glob.EXTGLOB | glob.FORCEUNIX


@dataclass(frozen=True)
class Pattern:
    """A single caller-supplied glob."""

    raw: str
    """Pattern exactly as supplied."""

    negated: bool
    """Whether ``raw`` carried a leading negation marker."""

    pattern: str
    """Glob with the negation marker stripped."""

    original_index: int
    """Position in the caller's sequence."""


@dataclass(frozen=True)
class ClassifiedPatterns:
    """Patterns split into two index-aligned sides.

    ``watched[i]`` holds the glob at position ``i`` when it is positive and
    ``ignored[i]`` holds it when it is negated. The other side is ``None``.
    """

    patterns: tuple[Pattern, ...]
    watched: tuple[str | None, ...]
    ignored: tuple[str | None, ...]

    @property
    def watch_set(self) -> list[str]:
        """Positive globs in authoring order."""
        return [p for p in self.watched if p is not None]

    @property
    def has_negations(self) -> bool:
        return any(p is not None for p in self.ignored)


def parse_pattern(raw: str, index: int) -> Pattern:
    """Strip a leading ``!`` from ``raw``.

    ``!(...)`` is an extglob and is left untouched.

    Raises:
        TypeError: If ``raw`` is not a string
    """
    if not isinstance(raw, str):
        raise TypeError(f"Glob patterns must be strings, got {type(raw).__name__}")

    if raw.startswith(NEGATION_MARKER) and not raw.startswith("!("):
        return Pattern(raw=raw, negated=True, pattern=raw[1:], original_index=index)
    return Pattern(raw=raw, negated=False, pattern=raw, original_index=index)


def classify(patterns: str | Iterable[str]) -> ClassifiedPatterns:
    """Split patterns into index-aligned positive and negative sides.

    The caller's sequence is copied before anything else happens, so it is
    never mutated.

    Args:
        patterns: A single glob or an ordered iterable of globs

    Returns:
        ClassifiedPatterns with one populated side per index
    """
    if isinstance(patterns, str):
        raw_patterns: tuple[str, ...] = (patterns,)
    else:
        raw_patterns = tuple(patterns)

    parsed = tuple(parse_pattern(raw, i) for i, raw in enumerate(raw_patterns))
    watched = tuple(None if p.negated else p.pattern for p in parsed)
    ignored = tuple(p.pattern if p.negated else None for p in parsed)

    return ClassifiedPatterns(patterns=parsed, watched=watched, ignored=ignored)


def normalize_path(path: str | os.PathLike) -> str:
    """Convert a path or glob to a normalized posix form.

    Backslashes become slashes, duplicate slashes and ``.`` segments are
    collapsed and a trailing slash is dropped.
    """
    text = os.fspath(path).replace("\\", "/")
    if not text:
        return ""
    return posixpath.normpath(text)


def is_absolute(path: str) -> bool:
    """True for posix absolute paths and drive-letter paths like ``C:/src``."""
    return path.startswith("/") or (len(path) > 2 and path[1] == ":" and path[2] == "/")


def join_base(base_path: str | os.PathLike | None, pattern: str) -> str:
    """Normalize ``pattern`` and join it under ``base_path`` when one is given.

    Absolute patterns keep their own root.
    """
    normalized = normalize_path(pattern)
    if base_path is None:
        return normalized

    base = normalize_path(base_path)
    if not base or is_absolute(normalized):
        return normalized
    return posixpath.normpath(posixpath.join(base, normalized))


class GlobMatcher:
    """Match normalized posix paths against a set of globs.

    A leading ``!`` is literal here (or an extglob when followed by ``(``);
    negation is resolved by ``build_ignore_predicate``, not by the matcher.
    An empty glob never matches.
    """

    def __init__(self, patterns: Iterable[str]):
        self.patterns = tuple(p for p in patterns if p)

    def match(self, path: str) -> bool:
        if not self.patterns:
            return False
        return glob.globmatch(path, self.patterns, flags=GLOB_FLAGS)


def compile_glob(*patterns: str) -> GlobMatcher:
    """Compile globs into one matcher."""
    return GlobMatcher(patterns)


def _compile_side(base_path, side: tuple[str | None, ...]) -> list[tuple[int, GlobMatcher]]:
    return [
        (index, compile_glob(join_base(base_path, pattern)))
        for index, pattern in enumerate(side)
        if pattern is not None
    ]


def _last_match(matchers: list[tuple[int, GlobMatcher]], path: str) -> int:
    """Original index of the last matching glob, or -1.

    When several globs on one side match, the latest-authored one is
    reported and the others are not consulted.
    """
    for index, matcher in reversed(matchers):
        if matcher.match(path):
            return index
    return -1


def build_ignore_predicate(
    base_path: str | os.PathLike | None,
    classified: ClassifiedPatterns,
) -> Callable[[str], bool]:
    """Build ``is_ignored(path)`` from classified patterns.

    A path is ignored when the last negation matching it was authored after
    the last positive glob matching it, or when no positive glob matches it
    at all.

    Args:
        base_path: Directory every relative glob is joined under (optional)
        classified: Output of ``classify()``

    Returns:
        Predicate over a filesystem path
    """
    positives = _compile_side(base_path, classified.watched)
    negatives = _compile_side(base_path, classified.ignored)
    logger.debug(
        f"Built ignore predicate from {len(positives)} positive and {len(negatives)} negative glob(s)"
    )

    def is_ignored(path: str | os.PathLike) -> bool:
        candidate = normalize_path(path)

        negative_match = _last_match(negatives, candidate)
        if negative_match == -1:
            return False

        positive_match = _last_match(positives, candidate)
        if positive_match == -1:
            return True

        return negative_match > positive_match

    return is_ignored
