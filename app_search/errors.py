"""Exceptions raised by the embedding and ranking core."""


class SearchError(Exception):
    """Base class for every error raised by app_search."""


class DegenerateVectorError(SearchError):
    """A vector has zero (or non-finite) norm and cannot be normalised."""


class EmbeddingProviderError(SearchError):
    """The embedding model failed; the upstream exception is the __cause__."""


class InvalidTokenOutputsError(SearchError, ValueError):
    """Model output whose shape metadata does not match its data."""


class DimensionMismatchError(SearchError):
    def __init__(self, expected: int, got):
        super().__init__(f"Dimension mismatch: query {got} vs index {expected}")
        self.expected = expected
        self.got = got


class IndexOutOfRangeError(SearchError, IndexError):
    def __init__(self, position: int, size: int):
        super().__init__(f"position {position} outside [0, {size})")
        self.position = position
        self.size = size
