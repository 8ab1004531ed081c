from src.recordfiles.records import Record


class VersionTracker:
    """Reads the file version counter kept on the record.

    Persisting a new version is up to the caller, once the file is stored.
    """

    def __init__(self, record: Record, version_attribute: str = "file_version"):
        self.record = record
        self.version_attribute = version_attribute

    def current(self) -> int:
        version = self.record.get_attribute(self.version_attribute)
        if version is None or version == "":
            return 0
        return int(version)

    def next(self) -> int:
        return self.current() + 1
