NO_DATA_EXTRACTED = 'NO_DATA_EXTRACTED'
LOW_CONFIDENCE = 'LOW_CONFIDENCE'
MISSING_DATA = 'MISSING_DATA'
MANUAL_ENTRY_INVALID = 'MANUAL_ENTRY_INVALID'


class ScanError(Exception):
    def __init__(self, code: str, message: str, status_code: int = 400, details: dict | None = None):
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details or {}
