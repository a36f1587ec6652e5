from __future__ import annotations


class CoachError(Exception):
	"""Base class for wizard and generation errors."""


class GenerationFailure(CoachError):
	"""A structured, grounded or chat generation call failed or returned unusable output."""


class ChatFailure(CoachError):
	"""Chat reply could not be produced."""


class InvalidTransition(CoachError):
	"""The trigger is not available in the session's current state."""
