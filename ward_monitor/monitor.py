"""
Ward Monitor - Main entry point
Terminal board showing measurement countdowns for every patient in labor,
or for a single patient with --patient.
"""

import argparse
import asyncio
import logging
from typing import Optional

from clients.timer_api_client import get_partogram_api_client
from sync.timer_view import STATE_CHANGED, PartogramView, PatientListView, TimerEvent, TimerView


# Configure logging
logging.basicConfig(
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    level=logging.INFO
)
logger = logging.getLogger(__name__)

PERIOD_LABELS = {1: "I", 2: "II"}


def render_board(view: TimerView) -> str:
    """One line per cached patient."""
    lines = []
    for timer in view.cache.timers():
        name = timer.full_name or f"Patient {timer.patient_id}"
        if timer.in_progress:
            countdown = "OVERDUE" if timer.is_lapsed else timer.display
            lines.append(
                f"{timer.patient_id:>4}  {name:<30} period {PERIOD_LABELS.get(timer.period, '?'):<3}"
                f"{countdown:>8}  [{timer.urgency}]"
            )
        else:
            lines.append(f"{timer.patient_id:>4}  {name:<30} {timer.status}")
    return "\n".join(lines) if lines else "(no patients)"


class BoardPrinter:
    """Listener that reprints the board on state changes and flags new lapses."""

    def __init__(self, view: TimerView):
        self.view = view
        self._lapsed = set()

    def __call__(self, event: TimerEvent) -> None:
        if event.kind == STATE_CHANGED:
            print(render_board(self.view), flush=True)

        for patient_id in event.patient_ids:
            timer = self.view.cache.get(patient_id)
            if timer is None or not timer.is_lapsed:
                self._lapsed.discard(patient_id)
                continue
            if patient_id not in self._lapsed:
                self._lapsed.add(patient_id)
                logger.warning(f"Measurement overdue for patient {patient_id}")


async def run(patient_id: Optional[int] = None) -> None:
    client = get_partogram_api_client()
    if patient_id is None:
        view: TimerView = PatientListView(client)
    else:
        view = PartogramView(client, patient_id)

    view.add_listener(BoardPrinter(view))
    await view.start()
    logger.info(f"Monitoring {client.base_url}")
    try:
        await asyncio.Event().wait()
    finally:
        await view.stop()


def main() -> None:
    parser = argparse.ArgumentParser(description="Ward partogram countdown board")
    parser.add_argument("--patient", type=int, default=None, help="Show a single patient's timer")
    args = parser.parse_args()

    try:
        asyncio.run(run(args.patient))
    except KeyboardInterrupt:
        logger.info("Monitor stopped")


if __name__ == "__main__":
    main()
