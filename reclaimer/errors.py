"""
Error types for the volume reclaimer.

Only StoreReadError aborts a pass. PolicyParseError never escapes the
policy/marker readers, and StoreWriteError is recorded per volume.
"""


class PolicyParseError(ValueError):
    """Raised when a duration or timestamp annotation cannot be parsed"""
    pass


class StoreReadError(Exception):
    """Raised when the volume list cannot be fetched from the cluster"""
    pass


class StoreWriteError(Exception):
    """Raised when a patch against a single volume fails"""

    def __init__(self, volume_name: str, message: str, status: int | None = None):
        super().__init__(f"{volume_name}: {message}")
        self.volume_name = volume_name
        self.status = status

    @property
    def conflict(self) -> bool:
        """True when the API server rejected the patch because the volume changed"""
        return self.status == 409
