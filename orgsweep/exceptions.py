"""Exception types raised by the crawl orchestrator and its collaborators."""


class OrgSweepError(Exception):
    """Base class for errors surfaced to callers of the crawl service."""

    status_code = 500


class ConflictError(OrgSweepError):
    """Raised when a crawl is started while another one is still running."""

    status_code = 400


class CredentialsNotSetError(OrgSweepError):
    """Raised when an operation needs organization credentials that were never set."""

    status_code = 400


class UnknownActionError(OrgSweepError):
    """Raised when handle_action receives an unsupported remediation action."""

    status_code = 400


class InvalidArnError(OrgSweepError):
    """Raised when an ARN does not carry an account ID."""

    status_code = 400


class TierResolutionError(OrgSweepError):
    """Raised by a tier resolver that cannot determine a tenant's tier."""


class TenantStateMismatchError(OrgSweepError):
    """Raised when a stored state file belongs to a different tenant than the one requested."""


class StateLockError(OrgSweepError):
    """Raised when a tenant's state stays locked by another process past the timeout."""

    status_code = 409
