import argparse
import asyncio
import logging
import sys

from .config import SessionConfig
from .interaction import LabelTimer
from .log_config import setup_logging
from .models import SensitivityMode
from .session import ComparisonSession


class _NoLabelTimer(LabelTimer):
    """Labels are irrelevant without a window."""

    def start(self, delay_ms, callback):
        return None


def build_parser():
    parser = argparse.ArgumentParser(
        description="Image Ranker - rank candidate images by perceptual difference to a reference")
    parser.add_argument("reference", nargs="?", help="Reference image")
    parser.add_argument("candidates", nargs="*", help="Candidate images")
    parser.add_argument("--sensitivity", "-s", choices=[m.key for m in SensitivityMode],
                        default=SensitivityMode.EXACT.key,
                        help="Active sensitivity mode (all, colors, aa)")
    parser.add_argument("--color", "-c", type=str,
                        help="Diff highlight color as R,G,B or #RRGGBB")
    parser.add_argument("--recompute-all-on-color", action="store_true",
                        help="Re-render every candidate's diff when the highlight color changes")
    parser.add_argument("--workers", type=int, help="Comparison worker threads")
    parser.add_argument("--report", action="store_true",
                        help="Print the ranking and exit (headless mode)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose (DEBUG) logging")
    parser.add_argument("--log-file", type=str, help="Also write the log to this file")
    return parser


async def run_report(config, reference, candidates, out=None):
    """Rank candidates against the reference and print one line per candidate."""
    out = out or sys.stdout
    session = ComparisonSession(config, timer=_NoLabelTimer())
    try:
        if not await session.set_reference(reference):
            print(f"Error: {session.status}", file=out)
            return 1
        await session.add_candidates(candidates)

        snap = session.snapshot()
        print(f"Reference: {snap.reference_name} ({snap.reference_size[0]}x{snap.reference_size[1]})"
              f"  sensitivity: {snap.sensitivity.label}", file=out)
        for rank, entry in enumerate(snap.entries, 1):
            metrics = session.store.get(entry.candidate_id).metrics
            extra = ""
            if metrics.psnr is not None:
                extra = f"  PSNR {metrics.psnr:7.2f} dB  SSIM {metrics.ssim:.4f}"
            flag = "  [degraded]" if entry.degraded else ""
            print(f"{rank:3d}  {entry.score_text:>8}  {entry.name}{extra}{flag}", file=out)
        if snap.status and snap.status != "Done.":
            print(snap.status, file=out)
        return 0
    finally:
        session.engine.shutdown()


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.WARNING, args.log_file)

    try:
        config = SessionConfig.from_args(args)
    except ValueError as e:
        parser.error(str(e))

    if args.report:
        # Headless mode
        if not args.reference:
            print("Error: Reference image required for --report")
            sys.exit(1)
        sys.exit(asyncio.run(run_report(config, args.reference, args.candidates)))

    # GUI Mode
    from PySide6 import QtAsyncio
    from PySide6.QtWidgets import QApplication
    from .main_window import MainWindow

    app = QApplication(sys.argv)
    window = MainWindow(ComparisonSession(config))
    window.show()
    QtAsyncio.run(window.preload(args.reference, args.candidates), keep_running=True)
    sys.exit(0)


if __name__ == "__main__":
    main()
