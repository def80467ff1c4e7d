"""Run-level production summary shared by all events of a sample."""

from __future__ import annotations

import enum

from hhcoffea.era_utils import load_json
from hhcoffea.errors import MissingPrerequisite
from hhcoffea.jec_uncertainties import JecUncertainties
from hhcoffea.triggers import TriggerDescriptorCollection


class Channel(enum.IntEnum):
    ETau = 0
    MuTau = 1
    TauTau = 2
    MuMu = 3
    EE = 4
    EMu = 5


class SummaryInfo:
    """Trigger patterns per channel plus the optional JEC uncertainty corrector.

    ``prod_summary`` is a mapping with parallel ``triggers_channel`` and
    ``triggers_pattern`` lists, as stored in the ntuple ``summary`` tree.
    """

    def __init__(self, prod_summary, jec_uncertainties=None):
        self.prod_summary = prod_summary
        self._trigger_descriptors = {}
        channels = prod_summary.get("triggers_channel", ())
        patterns = prod_summary.get("triggers_pattern", ())
        if len(channels) != len(patterns):
            raise ValueError(
                f"Inconsistent production summary: {len(channels)} trigger channels "
                f"for {len(patterns)} trigger patterns."
            )
        for channel_id, pattern in zip(channels, patterns):
            channel = Channel(int(channel_id))
            self._trigger_descriptors.setdefault(channel, TriggerDescriptorCollection()).add(str(pattern))
        self._jec_uncertainties = jec_uncertainties

    @classmethod
    def from_json(cls, filepath, jec_uncertainties=None):
        return cls(load_json(filepath), jec_uncertainties)

    def trigger_descriptors(self, channel):
        channel = Channel(channel)
        if channel not in self._trigger_descriptors:
            raise MissingPrerequisite(f"Information for channel {channel.name} not found.")
        return self._trigger_descriptors[channel]

    @property
    def channels(self):
        return tuple(self._trigger_descriptors)

    @property
    def has_jec_uncertainties(self):
        return self._jec_uncertainties is not None

    @property
    def jec_uncertainties(self) -> JecUncertainties:
        if self._jec_uncertainties is None:
            raise MissingPrerequisite("JEC uncertainties are not stored in the run summary.")
        return self._jec_uncertainties
