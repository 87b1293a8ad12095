from __future__ import annotations


class OreBotError(Exception):
    """Base class for all orebot failures."""


class ConfigError(OreBotError):
    """Configuration document missing, malformed or violating an invariant."""


class SignerError(OreBotError):
    """Signer material could not be loaded."""


class ReadError(OreBotError):
    """Remote state fetch or decode failed."""


class AccountNotFound(ReadError):
    def __init__(self, label: str, address: str):
        super().__init__(f"{label} account not found: {address}")
        self.label = label
        self.address = address


class PriceUnavailable(OreBotError):
    """Price feed unreachable or missing a required id."""


class SubmissionError(OreBotError):
    def __init__(self, message: str, *, channel: str = "direct"):
        super().__init__(message)
        self.channel = channel


class SubmissionRejected(SubmissionError):
    """Simulation or validation failure. Never retried."""


class SubmissionTransient(SubmissionError):
    """Network, timeout or blockhash expiry. Retried up to the ceiling."""


class RelayFailure(OreBotError):
    """Bundle relay failed. Logged only, never propagated past the relay task."""
