"""Exception hierarchy for content-wizard."""

from __future__ import annotations


class ContentWizardError(Exception):
    """Base error for the package."""


# ── Gateway ──────────────────────────────────────────────────────────────────

class GatewayError(ContentWizardError):
    """Generic failure talking to the generative collaborator."""


class MissingCredentialError(GatewayError):
    """No API key in the environment or the local credential file."""


class CredentialInvalidatedError(GatewayError):
    """The collaborator rejected the key ("Requested entity was not found")."""


class MalformedResponseError(GatewayError):
    """A structured response could not be parsed."""


class MissingPayloadError(GatewayError):
    """An otherwise successful response carried no image/audio payload."""


# ── Wizard ───────────────────────────────────────────────────────────────────

class WizardError(ContentWizardError):
    """Base error for wizard state-machine misuse."""


class WizardBusyError(WizardError):
    """A generation was requested while another one is in flight."""


class WizardStateError(WizardError):
    """The wizard is not in a state that allows the operation."""
