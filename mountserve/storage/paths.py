"""
Confinement of untrusted request paths to a backend base directory.

Every component of a candidate path is checked before anything is joined,
so there is no normalise-then-recheck step and no filesystem access.
"""

from dataclasses import dataclass
from pathlib import Path, PurePath, PurePosixPath, PureWindowsPath
from typing import Tuple, Union

from mountserve.exceptions import PathTraversalException

INDEX_DOCUMENT = 'index.html'


@dataclass(frozen=True)
class ResolvedPath:
    """A path known to be confined to ``base``."""
    base: PurePath
    parts: Tuple[str, ...]

    @property
    def path(self) -> PurePath:
        """Filesystem path (base joined with the validated parts)."""
        return self.base.joinpath(*self.parts)

    @property
    def key(self) -> str:
        """Object key form, components joined with '/'."""
        return '/'.join(self.parts)

    def __str__(self) -> str:
        return str(self.path)


def with_index_document(candidate: str) -> str:
    """Map a directory request ('' or ending in '/') onto its index document."""
    if candidate == '' or candidate.endswith('/'):
        return candidate + INDEX_DOCUMENT
    return candidate


def split_components(candidate: str) -> Tuple[str, ...]:
    """
    Validate every component of candidate and return the plain names.

    Raises:
        PathTraversalException on an absolute path, a parent reference or a
        component that is not a plain name
    """
    if not isinstance(candidate, str):
        raise PathTraversalException(f"Path must be a string: {candidate!r}")

    if candidate.startswith('/') or PureWindowsPath(candidate).drive:
        raise PathTraversalException(f"Absolute paths are not allowed: {candidate!r}")

    parts = []
    for component in candidate.split('/'):
        if component in ('', '.'):
            continue
        if component == '..':
            raise PathTraversalException(
                f"Paths cannot reference a parent directory: {candidate!r}"
            )
        if '\\' in component or '\x00' in component:
            raise PathTraversalException(f"Invalid path component {component!r} in {candidate!r}")
        parts.append(component)
    return tuple(parts)


def resolve_path(base: Union[Path, PurePath], candidate: str) -> ResolvedPath:
    """
    Resolve a caller-supplied relative path against base.

    Args:
        base: Base directory, already canonicalised by the backend
        candidate: Untrusted relative path

    Returns:
        ResolvedPath confined to base

    Raises:
        PathTraversalException if candidate is absolute or references a parent
    """
    return ResolvedPath(base=base, parts=split_components(candidate))


def resolve_key(candidate: str) -> ResolvedPath:
    """Resolve a candidate into an object key under an empty base."""
    return resolve_path(PurePosixPath(), candidate)
