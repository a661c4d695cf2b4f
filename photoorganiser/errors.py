class PhotoOrganiserError(Exception):
    """Base error for the project."""

class InvalidPathError(PhotoOrganiserError):
    pass

class MetadataError(PhotoOrganiserError):
    """Embedded metadata exists but could not be decoded."""

class NoValidDateError(PhotoOrganiserError):
    pass
