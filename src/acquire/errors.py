"""Error types raised inside the acquisition pipeline.

Every error here is caught at the pipeline boundary and turned into a failed
AcquisitionOutcome; none of them escapes to the orchestrator.
"""


class AcquisitionError(Exception):
    """Base class for failures of a single crate acquisition."""


class CacheMiss(AcquisitionError):
    """No usable cached archive; the pipeline falls back to downloading."""


class UnexpectedCacheStructure(CacheMiss):
    """An index path does not sit inside a ``registry/index`` directory."""

    def __init__(self, index_path: str):
        self.index_path = index_path
        super().__init__(f"unexpected registry cache structure for index {index_path}")


class ChecksumMismatch(AcquisitionError):
    """SHA-256 of the artifact bytes differs from the registry checksum."""

    def __init__(self, expected: bytes, actual: bytes):
        self.expected = expected
        self.actual = actual
        super().__init__(f"invalid checksum, expected {expected.hex()} but got {actual.hex()}")


class DownloadError(AcquisitionError):
    """Transport failure or error status while fetching an artifact."""


class UnsafeArchiveEntry(AcquisitionError):
    """An archive entry would be written outside the destination directory."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"a file in the archive ({path}) {reason}")
