"""
Ingest document: the source map a processor reads from and writes to.

Field paths are dotted (`vectors.title`). Numeric path segments index into
lists, so `chunks.0.embedding` reaches into the first chunk.
"""

import copy
from typing import Any, Dict, List

from .errors import AffineTransformationError, MissingFieldError

_MISSING = object()


def _split_path(path: str) -> List[str]:
    if not isinstance(path, str) or not path.strip():
        raise AffineTransformationError(f"path [{path}] is not a valid field path")
    segments = path.split(".")
    if any(not s for s in segments):
        raise AffineTransformationError(f"path [{path}] is not a valid field path")
    return segments


def _child(container: Any, segment: str) -> Any:
    if isinstance(container, dict):
        return container.get(segment, _MISSING)
    if isinstance(container, list):
        try:
            index = int(segment)
        except ValueError:
            return _MISSING
        if -len(container) <= index < len(container):
            return container[index]
    return _MISSING


class IngestDocument:
    """Mutable view over a document source during ingest."""

    def __init__(self, source: Dict[str, Any]):
        if not isinstance(source, dict):
            raise AffineTransformationError(f"document source of type [{type(source).__name__}] is not an object")
        self._source = source

    @property
    def source(self) -> Dict[str, Any]:
        return self._source

    def _lookup(self, path: str) -> Any:
        current = self._source
        for segment in _split_path(path):
            current = _child(current, segment)
            if current is _MISSING:
                return _MISSING
        return current

    def has_field(self, path: str) -> bool:
        """True if the path resolves to a non-null value."""
        value = self._lookup(path)
        return value is not _MISSING and value is not None

    def get_field_value(self, path: str, ignore_missing: bool = False) -> Any:
        """
        Read a field value.

        Args:
            path: Dotted field path
            ignore_missing: Return None instead of raising when absent

        Raises:
            MissingFieldError: If the field is absent and ignore_missing is False
        """
        value = self._lookup(path)
        if value is _MISSING or value is None:
            if ignore_missing:
                return None
            raise MissingFieldError(path)
        return value

    def set_field_value(self, path: str, value: Any) -> None:
        """Write a field value, creating intermediate objects as needed."""
        segments = _split_path(path)

        # Validate the whole path before creating anything
        current = self._source
        for depth, segment in enumerate(segments[:-1]):
            child = _child(current, segment)
            if child is _MISSING:
                if not isinstance(current, dict):
                    raise AffineTransformationError(
                        f"cannot set [{path}]: [{'.'.join(segments[:depth + 1])}] is out of bounds"
                    )
                break
            if not isinstance(child, (dict, list)):
                raise AffineTransformationError(
                    f"cannot set [{path}] with parent object of type [{type(child).__name__}] "
                    f"at [{'.'.join(segments[:depth + 1])}]"
                )
            current = child

        current = self._source
        for segment in segments[:-1]:
            child = _child(current, segment)
            if child is _MISSING:
                child = {}
                current[segment] = child
            current = child

        leaf = segments[-1]
        if isinstance(current, list):
            try:
                index = int(leaf)
            except ValueError:
                raise AffineTransformationError(f"cannot set [{path}]: [{leaf}] is not an integer index")
            if not -len(current) <= index < len(current):
                raise AffineTransformationError(f"cannot set [{path}]: index [{index}] is out of bounds")
            current[index] = value
        else:
            current[leaf] = value

    def to_dict(self) -> Dict[str, Any]:
        return copy.deepcopy(self._source)

    def __repr__(self) -> str:
        return f"IngestDocument({self._source})"
