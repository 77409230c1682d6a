"""Errors raised by the trove replica."""


class TroveReplicaError(Exception):
    """Base error class for trove replica errors"""


class MalformedRecord(TroveReplicaError):
    """Account bytes too short or a length prefix overruns the buffer"""


class MissingAccount(TroveReplicaError):
    """A single required account does not exist on chain"""


class DenomMismatch(TroveReplicaError, ValueError):
    """Positions of different collateral denoms were mixed"""
