"""Reading flat HH->bbtautau ntuples with uproot.

Events are returned as awkward arrays; each entry (an ``ak.Record``) is the
borrowed record an :class:`~hhcoffea.event_info.EventInfo` is built on.
"""

from __future__ import annotations

import logging

import awkward as ak
import uproot

from hhcoffea.event_info import EventInfo
from hhcoffea.jet_ordering import JetOrdering

logger = logging.getLogger(__name__)

EVENTS_TREE = "events"
SUMMARY_TREE = "summary"

# Warn-once cache (per worker process) to avoid log spam.
_WARN_ONCE: set[str] = set()


def open_events(path, tree_name=EVENTS_TREE, branches=None, entry_stop=None):
    """Read ``tree_name`` from *path* into an awkward array of event records."""
    with uproot.open(path) as f:
        if tree_name not in f:
            raise KeyError(f"Tree '{tree_name}' not found in {path}. Available: {sorted(f.keys())}")
        return f[tree_name].arrays(branches, entry_stop=entry_stop, library="ak")


def read_prod_summary(path, tree_name=SUMMARY_TREE):
    """Merge the trigger bookkeeping of all summary entries into one mapping."""
    channels = []
    patterns = []
    with uproot.open(path) as f:
        if tree_name not in f:
            logger.warning("No '%s' tree in %s; trigger descriptors will be empty.", tree_name, path)
            return {"triggers_channel": channels, "triggers_pattern": patterns}
        summary = f[tree_name].arrays(["triggers_channel", "triggers_pattern"], library="ak")
    seen = set()
    for entry_channels, entry_patterns in zip(ak.to_list(summary.triggers_channel),
                                              ak.to_list(summary.triggers_pattern)):
        for channel, pattern in zip(entry_channels, entry_patterns):
            key = (int(channel), str(pattern))
            if key in seen:
                continue
            seen.add(key)
            channels.append(key[0])
            patterns.append(key[1])
    return {"triggers_channel": channels, "triggers_pattern": patterns}


def iter_event_infos(events, period, jet_ordering=JetOrdering.DeepFlavour, summary_info=None,
                     kinfit_solver=None, selected_htt_index=0):
    """Yield one :class:`EventInfo` per event; events without the leg pair are skipped."""
    for event in events:
        if len(event.first_daughter_indexes) <= selected_htt_index:
            key = f"missing_htt_pair::{selected_htt_index}"
            if key not in _WARN_ONCE:
                _WARN_ONCE.add(key)
                logger.warning("Skipping events without leg pair %d (further occurrences not logged).",
                               selected_htt_index)
            continue
        yield EventInfo(event, selected_htt_index, period, jet_ordering,
                        summary_info=summary_info, kinfit_solver=kinfit_solver)
