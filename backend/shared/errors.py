"""Error types shared by the matching and dispatch runs."""


class PreferenceValidationError(ValueError):
    """Preference payload is malformed or under-specified."""


class PreferenceQuotaExceeded(PreferenceValidationError):
    """User already has the maximum number of active preferences."""


class TransientDeliveryError(Exception):
    """Mail send failed or timed out. Recorded on the notification, never raised from a run."""


class DataError(Exception):
    """Reading or writing pipeline tables failed. Aborts the current run."""
