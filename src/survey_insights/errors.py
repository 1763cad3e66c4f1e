from __future__ import annotations

INSUFFICIENT_DATA = "INSUFFICIENT_DATA"
PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
PARSE_FAILURE = "PARSE_FAILURE"
PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"
NOT_AUTHORIZED = "NOT_AUTHORIZED"
NOT_FOUND = "NOT_FOUND"
ANONYMITY_PROTECTED = "ANONYMITY_PROTECTED"

# Kinds a caller may see; provider-level kinds are absorbed by the fallback chain.
TERMINAL_ERROR_KINDS = {INSUFFICIENT_DATA, PERSISTENCE_FAILURE, NOT_FOUND, ANONYMITY_PROTECTED}

GENERIC_FAILURE_MESSAGE = "Could not complete the request. Please try again later."


class PersistenceError(Exception):
    """Raised when the store cannot read or write survey data."""

    kind = PERSISTENCE_FAILURE
