"""
Textual matrix format: `[[1,0,0],[0,1,0],[0,0,1]]`.

The outer brackets delimit the matrix, inner bracket pairs delimit rows and
values are decimal numbers. Whitespace is insignificant. `parse_matrix` is a
left inverse of `format_matrix`.
"""

import math
import re
from numbers import Real
from typing import List, Sequence

import numpy as np

from ..core.errors import ParseError, ShapeError
from .types import Matrix

_TOKEN_RE = re.compile(
    r"\s*(?:(?P<open>\[)|(?P<close>\])|(?P<comma>,)|"
    r"(?P<number>[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?))"
)


def _tokenize(text: str) -> List[tuple]:
    tokens = []
    pos = 0
    end = len(text.rstrip())
    while pos < end:
        match = _TOKEN_RE.match(text, pos)
        if match is None:
            raise ParseError(
                f"Can't parse source of transformation matrix: {text} "
                f"(unexpected character at offset {pos})"
            )
        kind = match.lastgroup
        tokens.append((kind, match.group(kind), match.start(kind)))
        pos = match.end()
    return tokens


class _GridReader:
    """Recursive descent over the token stream: Matrix := '[' Row (',' Row)* ']'."""

    def __init__(self, text: str):
        self.text = text
        self.tokens = _tokenize(text)
        self.index = 0

    def fail(self, expected: str) -> ParseError:
        if self.index < len(self.tokens):
            _, value, offset = self.tokens[self.index]
            found = f"'{value}' at offset {offset}"
        else:
            found = "end of input"
        return ParseError(f"Can't parse source of transformation matrix: {self.text} (expected {expected}, found {found})")

    def peek(self):
        if self.index < len(self.tokens):
            return self.tokens[self.index][0]
        return None

    def expect(self, kind: str, expected: str) -> str:
        if self.peek() != kind:
            raise self.fail(expected)
        value = self.tokens[self.index][1]
        self.index += 1
        return value

    def read_matrix(self) -> List[List[float]]:
        self.expect("open", "'['")
        rows = []
        if self.peek() == "close":
            self.index += 1
        else:
            rows.append(self.read_row())
            while self.peek() == "comma":
                self.index += 1
                rows.append(self.read_row())
            self.expect("close", "',' or ']'")
        if self.index != len(self.tokens):
            raise self.fail("end of input")
        return rows

    def read_row(self) -> List[float]:
        self.expect("open", "'['")
        row = []
        if self.peek() == "close":
            self.index += 1
            return row
        row.append(float(self.expect("number", "a number")))
        while self.peek() == "comma":
            self.index += 1
            row.append(float(self.expect("number", "a number")))
        self.expect("close", "',' or ']'")
        return row


def parse_matrix(text: str) -> Matrix:
    """
    Parse a matrix literal into a square Matrix.

    Args:
        text: Matrix literal, e.g. "[[2,0,0],[0,2,0],[0,0,1]]"

    Returns:
        Parsed Matrix

    Raises:
        ParseError: If the text is not a bracketed grid of numbers
        ShapeError: If the grid is empty, ragged or not square
    """
    if not isinstance(text, str):
        raise ParseError(
            f"Can't parse source of transformation matrix: value [{text}] of type [{type(text).__name__}] is not a string"
        )
    rows = _GridReader(text).read_matrix()
    return _square_matrix(rows)


def matrix_from_rows(rows: Sequence[Sequence[float]]) -> Matrix:
    """Validate a nested numeric sequence (JSON array form) and build a Matrix."""
    grid = []
    for i, row in enumerate(rows):
        if not isinstance(row, (list, tuple, np.ndarray)):
            raise ParseError(f"Can't parse transformation matrix: row [{i}] of type [{type(row).__name__}] is not an array")
        values = []
        for value in row:
            if isinstance(value, bool) or not isinstance(value, Real):
                raise ParseError(
                    f"Can't parse transformation matrix: value [{value}] in row [{i}] of type [{type(value).__name__}] is not a number"
                )
            try:
                values.append(float(value))
            except OverflowError:
                raise ParseError(
                    f"Can't parse transformation matrix: value at [{i}][{len(values)}] is too large to convert to a float"
                ) from None
        grid.append(values)
    return _square_matrix(grid)


def _square_matrix(rows: List[List[float]]) -> Matrix:
    if not rows:
        raise ShapeError("Transformation matrix is empty")

    width = len(rows[0])
    for i, row in enumerate(rows):
        if not row:
            raise ShapeError(f"Transformation matrix row [{i}] is empty")
        if len(row) != width:
            raise ShapeError(f"Transformation matrix rows have differing lengths: row [0] has {width}, row [{i}] has {len(row)}")

    if len(rows) != width:
        raise ShapeError(f"Transformation matrix is not square: {len(rows)}x{width}")

    for row in rows:
        for value in row:
            if not math.isfinite(value):
                raise ParseError(f"Transformation matrix contains a non-finite value: {value}")

    return Matrix(rows)


def format_matrix(matrix: Matrix) -> str:
    """Serialize a Matrix to its canonical literal form."""
    return "[" + ",".join(
        "[" + ",".join(repr(float(v)) for v in row) + "]" for row in matrix.to_rows()
    ) + "]"
