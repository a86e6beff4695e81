"""Failures of the remote collaborators (chat transport and grid store).

User mistakes and empty results never raise; they come back as reply text.
"""


class RemoteError(Exception):
    """A remote call failed after its retry budget."""


class TransportError(RemoteError):
    """The Webex API rejected or failed a request."""


class StoreError(RemoteError):
    """The Google Sheets API rejected or failed a request."""
