"""Exceptions shared by the storage, repository and receipt layers."""


class TrackerError(Exception):
    """Base class for expected tracker failures."""


class ConfigurationError(TrackerError):
    pass


class UpstreamError(TrackerError):
    """The spreadsheet or file backend could not be read or written."""


class RecordNotFound(TrackerError):
    pass


class DuplicateCategory(TrackerError):
    pass


class ReceiptScanError(TrackerError):
    """OCR could not produce any text for the image."""
