class RecordParseError(ValueError):
    """A CSV cell or row could not be parsed into a sensor record."""


class EmptyDatasetError(ValueError):
    """No valid records remained after loading every source."""
