class PaketError(Exception):
    """Base class for paket-specific errors."""


# Keys and randomness
class KeySizeError(PaketError, ValueError):
    pass


class KeyTypeError(PaketError, TypeError):
    pass


class EntropyError(PaketError):
    pass


class SegmentTooShortError(PaketError, ValueError):
    pass


# Table
class EntryNotFoundError(PaketError, KeyError):
    def __str__(self) -> str:
        # KeyError repr()s its argument; keep the plain message
        return str(self.args[0]) if self.args else ""


class EmptyIndexError(PaketError):
    def __init__(self, message: str = "table must contain at least one entry"):
        super().__init__(message)
        self.totals = (0, 0)


class TableFormatError(PaketError, ValueError):
    pass


class DuplicateEntryError(PaketError, ValueError):
    pass


# Construction preconditions
class PreconditionError(PaketError):
    pass


class MissingContainerError(PreconditionError):
    pass


class EmptyContainerError(PreconditionError):
    pass


# Reads
class ContainerIOError(PaketError, OSError):
    pass


class ShortReadError(ContainerIOError):
    pass


class SegmentBoundsError(ContainerIOError):
    pass


class ContainerClosedError(ContainerIOError):
    pass
