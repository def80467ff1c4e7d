"""Trigger descriptors (per channel) and per-event trigger results.

Bit ``n`` of the accept/match bit sets refers to the ``n``-th pattern
registered for the event's channel in the production summary.
"""

from __future__ import annotations

from fnmatch import fnmatchcase

from hhcoffea.errors import InvalidIndex, MissingPrerequisite


class TriggerDescriptorCollection:
    """Ordered list of HLT path patterns (``HLT_..._v*`` wildcards allowed)."""

    def __init__(self, patterns=()):
        self._patterns = list(patterns)

    def add(self, pattern):
        self._patterns.append(pattern)

    @property
    def patterns(self):
        return tuple(self._patterns)

    def __len__(self):
        return len(self._patterns)

    def find(self, path):
        """Return the index of the first pattern matching ``path`` (or equal to it)."""
        for n, pattern in enumerate(self._patterns):
            if pattern == path or fnmatchcase(path, pattern):
                return n
        return None


class TriggerResults:
    def __init__(self, accept_bits=0, match_bits=0, descriptors=None):
        self.accept_bits = int(accept_bits)
        self.match_bits = int(match_bits)
        self.descriptors = descriptors

    def _check_index(self, index):
        if index < 0 or (self.descriptors is not None and index >= len(self.descriptors)):
            raise InvalidIndex(f"Trigger index {index} is not registered.")

    def accept(self, index):
        self._check_index(index)
        return bool((self.accept_bits >> index) & 1)

    def match(self, index):
        self._check_index(index)
        return bool((self.match_bits >> index) & 1)

    def accept_and_match(self, index):
        return self.accept(index) and self.match(index)

    def _indices(self, paths):
        if self.descriptors is None:
            raise MissingPrerequisite("Trigger descriptors were not provided for this event.")
        indices = []
        for path in paths:
            index = self.descriptors.find(path)
            if index is not None:
                indices.append(index)
        return indices

    def any_accept(self, paths):
        """True if any of the named HLT paths fired."""
        return any(self.accept(n) for n in self._indices(paths))

    def any_accept_and_match(self, paths):
        """True if any of the named HLT paths fired and is matched to the selected legs."""
        return any(self.accept_and_match(n) for n in self._indices(paths))
