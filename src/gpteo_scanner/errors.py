"""Exceptions raised by the scan pipeline."""


class ScannerError(Exception):
    """Base class for all scanner errors."""


class ValidationError(ScannerError):
    """A scan request was rejected before a scan was created."""


class ScanNotFoundError(ScannerError):
    """The scan does not exist or is not visible to the caller."""

    def __init__(self, scan_id: str):
        super().__init__(f"Scan not found: {scan_id}")
        self.scan_id = scan_id


class AlreadyTerminalError(ScannerError):
    """The scan already reached completed, failed or cancelled."""

    def __init__(self, scan_id: str, status: str):
        super().__init__(f"Scan {scan_id} is already {status}")
        self.scan_id = scan_id
        self.status = status


class InvalidTransitionError(ScannerError):
    """A scan status change is not allowed by the state machine."""


class OrchestrationError(ScannerError):
    """Unrecoverable failure while running a scan."""


class StoreError(ScannerError):
    """The durable store rejected or failed an operation."""


class CheckInUseError(StoreError):
    """A check cannot be deleted while findings reference it."""

    def __init__(self, check_key: str, references: int):
        super().__init__(f"Check {check_key} is referenced by {references} findings")
        self.check_key = check_key
        self.references = references


class RuleEvaluationError(ScannerError):
    """A rule could not evaluate the data it needs."""


class ScanActiveError(ScannerError):
    """The operation needs a scan that is no longer queued or running."""
