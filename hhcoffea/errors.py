"""Exceptions raised by the event-level accessors.

An undefined jet pair is a legal outcome of the signal-jet selection and is
queried with the ``has_*`` predicates; only *using* a missing object raises.
"""


class EventInfoError(Exception):
    """Base class for all event-level accessor failures."""


class MissingPrerequisite(EventInfoError, RuntimeError):
    """A derived object needs something this event does not provide.

    Examples: an undefined b-jet or VBF pair, no run summary, no JEC corrector,
    no kinematic-fit solver for a side-table miss.
    """


class InvalidIndex(EventInfoError, IndexError):
    """Leg/jet id outside {1, 2} or an index outside the record arrays."""


class ConflictingRequest(EventInfoError, ValueError):
    """Mutually exclusive options were requested together."""
