"""Exception hierarchy shared by every dmdb-exporter component.

Errors fall into three families:

* :class:`ConfigurationError` -- bad definitions, unknown metric kinds and
  probe targets that cannot be resolved.  Fatal to the affected definition
  or request, never silently downgraded.
* :class:`DatabaseError` -- the database handle cannot be opened or pinged.
  Marks the target down for the current scrape cycle.
* :class:`ScrapeError` -- a single definition failed during a cycle.  Counted
  against its context and logged; sibling definitions keep running.
"""

from __future__ import annotations


class ExporterError(Exception):
    """Base exception for all dmdb-exporter errors."""


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class ConfigurationError(ExporterError):
    """Static configuration is invalid."""


class DefinitionError(ConfigurationError):
    """A metric definition is missing required fields or is malformed."""


class DefinitionFileError(ConfigurationError):
    """A metric definition file cannot be read or parsed."""


class UnknownMetricKindError(ConfigurationError):
    """A ``metricstype`` token is neither ``gauge`` nor ``counter``."""


class TargetResolutionError(ConfigurationError):
    """A probe request could not be turned into a connection target."""


class InvalidPortError(TargetResolutionError):
    """The ``target`` parameter carries a port that is not an unsigned integer."""


class SectionNotFoundError(TargetResolutionError):
    """The requested module has no matching credential section."""


class MissingCredentialsError(TargetResolutionError):
    """The resolved credential section lacks a user or a password."""


class CredentialFileError(ConfigurationError):
    """The credential file cannot be read or parsed."""


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


class DatabaseError(ExporterError):
    """The database handle is unusable."""


class ConnectError(DatabaseError):
    """A database engine could not be created for the given DSN."""


class DatabaseClosedError(DatabaseError):
    """The database handle has been closed and must be reopened."""


class PingError(DatabaseError):
    """The database did not answer the liveness query."""


# ---------------------------------------------------------------------------
# Scraping
# ---------------------------------------------------------------------------


class ScrapeError(ExporterError):
    """A metric definition could not be scraped."""


class QueryError(ScrapeError):
    """The driver rejected or failed the query."""


class QueryTimeoutError(ScrapeError):
    """The query did not finish before its deadline."""


class NoMetricsFoundError(ScrapeError):
    """A definition that expects data produced no samples."""
