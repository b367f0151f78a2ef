class WorkbenchError(Exception):
    """Base class for every error raised by the workbench core."""


class FileFormatError(WorkbenchError):
    """A project file cannot be loaded; the open document is left untouched."""


class ChecksumError(FileFormatError):
    def __init__(self, source: str = ""):
        self.source = source
        super().__init__(self._prefix() + "File Corrupted; Checksum is incorrect")

    def _prefix(self):
        return f"Cannot Load Project File = {self.source}; " if self.source else ""


class BadMagicError(FileFormatError):
    def __init__(self, magic: int, source: str = ""):
        self.magic = magic
        self.source = source
        prefix = f"Cannot Load Project File = {source}; " if source else ""
        super().__init__(prefix + "File is not a Workbench project file")


class UnsupportedVersionError(FileFormatError):
    age = ""

    def __init__(self, version: int, expected: int, source: str = ""):
        self.version = version
        self.expected = expected
        self.source = source
        prefix = f"Cannot Load Project File = {source}; " if source else ""
        super().__init__(
            f"{prefix}File is too {self.age}; "
            f"Version is {version} and Expected Version is {expected}")


class VersionTooOldError(UnsupportedVersionError):
    age = "OLD"


class VersionTooNewError(UnsupportedVersionError):
    age = "NEW"


class TruncatedFileError(FileFormatError):
    def __init__(self, what: str):
        self.what = what
        super().__init__(f"Unexpected end of data while reading {what}")


class CreationLimitError(WorkbenchError):
    """Placing another instance of a component type would exceed its cap."""

    def __init__(self, type_name: str, limit: int):
        self.type_name = type_name
        self.limit = limit
        super().__init__(
            f"Cannot Create New Component Of Type: {type_name} "
            f"Exceeded Creation Limit Of {limit}")


class IntegrityError(WorkbenchError):
    """An internal invariant is broken; detected before any mutation."""

    def __init__(self, message: str):
        super().__init__(f"CODING ERROR: {message}")


class IllegalModeError(IntegrityError):
    def __init__(self, mode):
        self.mode = mode
        super().__init__(f"ILLEGAL MODE SELECTED ({mode!r})")
