import argparse
import logging
import time
from pathlib import Path

from hhcoffea.cli_utils import (
    event_row,
    list_jet_orderings,
    list_periods,
    parse_uncertainty_scale,
    write_event_rows,
)
from hhcoffea.jec_uncertainties import NO_UNCERTAINTY, JecUncertainties
from hhcoffea.ntuple_io import iter_event_infos, open_events, read_prod_summary
from hhcoffea.summary import SummaryInfo

logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')


def build_parser():
    parser = argparse.ArgumentParser(
        description="Dump signal-jet selection and derived HH quantities of a flat ntuple to CSV."
    )
    parser.add_argument("input", type=Path, help="Input ntuple ROOT file.")
    parser.add_argument("--period", required=True, choices=list_periods(), help="Data-taking period.")
    parser.add_argument("--jet-ordering", default="DeepFlavour", choices=list_jet_orderings(),
                        help="Tagger used to rank b-jet candidates.")
    parser.add_argument("--tree", default="events", help="Events tree name.")
    parser.add_argument("--htt-index", type=int, default=0, help="Leg pair used as the H->tautau candidate.")
    parser.add_argument("--max-events", type=int, default=None, help="Read at most this many events.")
    parser.add_argument("--unc-source", default=NO_UNCERTAINTY,
                        help="JES uncertainty source to apply (default: no shift).")
    parser.add_argument("--unc-scale", default="Central", type=parse_uncertainty_scale,
                        help="Up, Down or Central.")
    parser.add_argument("--jec-json", type=Path, default=None,
                        help="Override the period's JEC uncertainty correctionlib payload.")
    parser.add_argument("--jec-tag", default=None, help="Correction-name prefix for --jec-json.")
    parser.add_argument("--output", type=Path, default=Path("event_info.csv"), help="Output CSV file.")
    return parser


def validate_arguments(args):
    """Check CLI argument combinations are valid before running."""
    if args.jec_json is not None and not args.jec_tag:
        raise ValueError("--jec-tag is required together with --jec-json.")
    if args.htt_index < 0:
        raise ValueError("--htt-index must be non-negative.")


def main(argv=None):
    args = build_parser().parse_args(argv)
    validate_arguments(args)
    start_time = time.time()

    shifted = args.unc_source != NO_UNCERTAINTY and int(args.unc_scale) != 0
    jec_uncertainties = None
    if shifted:
        if args.jec_json is not None:
            jec_uncertainties = JecUncertainties.from_file(str(args.jec_json), args.jec_tag)
        else:
            jec_uncertainties = JecUncertainties.for_period(args.period)
    summary_info = SummaryInfo(read_prod_summary(args.input), jec_uncertainties)

    logging.info(f"Reading events from {args.input}")
    events = open_events(args.input, args.tree, entry_stop=args.max_events)

    def rows():
        for event_info in iter_event_infos(events, args.period, args.jet_ordering,
                                           summary_info=summary_info,
                                           selected_htt_index=args.htt_index):
            if shifted:
                event_info = event_info.apply_shift(args.unc_source, args.unc_scale)
            yield event_row(event_info)

    n_rows = write_event_rows(rows(), args.output)
    logging.info("Wrote %d events to %s", n_rows, args.output)
    logging.info(f"Execution took {(time.time() - start_time):.2f} seconds")


if __name__ == "__main__":
    main()
