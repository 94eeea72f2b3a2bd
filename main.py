import sys

from loguru import logger

import daylayout.settings as settings
from daylayout.config import load_config
from daylayout.drag import DragController
from daylayout.event_processing import split_all_day_entries, describe
from daylayout.geometry import event_box
from daylayout.logger import configure_logging, DRAG
from daylayout.ranks import RankLedger
from daylayout.replay import RecordingWriter, replay_gesture
from daylayout.utils import day_key


def log_layout(controller: DragController, track: dict) -> None:
    layout = controller.layout()
    for ev in sorted(controller.events, key=lambda e: (e.start, e.id)):
        info = layout[ev.id]
        box = event_box(ev, info, track)
        if box is None:
            logger.info("  • {}: outside window", describe(ev))
            continue
        logger.info(
            "  • {}: column {}/{} span {} | left {l:.1f} width {w:.1f} top {t:.1f} height {h:.1f}",
            describe(ev), info.column, info.total_columns, info.span,
            l=box["left"], w=box["width"], t=box["top"], h=box["height"],
        )


def main():
    # 0) Set up logs
    configure_logging()
    logger.debug("Timezone: {}", settings.TIMEZONE)

    # 1) Load the day
    try:
        config = load_config()
    except FileNotFoundError:
        logger.error("No scenario file at {}", settings.CONFIG_PATH)
        sys.exit(1)

    day = config["day"]
    track = config["timeline"]["track"]
    all_day, timed = split_all_day_entries(config["events"])
    logger.info("Laying out {}: {} timed, {} all-day", day_key(day), len(timed), len(all_day))

    # 2) Resting layout
    writer = RecordingWriter(config["events"])
    controller = DragController(
        timed,
        day=day,
        ranks=RankLedger(),
        writer=writer,
        mode=config["timeline"]["drag_mode"],
        track=track,
        haptics=lambda style: logger.log(DRAG, "Haptic pulse: {}", style),
        on_double_tap=lambda eid: logger.info("Double tap on {}, opening editor", eid),
    )
    log_layout(controller, track)

    # 3) Scripted gestures
    for gesture in config["gestures"]:
        logger.info("Replaying gesture on {}", gesture.get("event"))
        commit = replay_gesture(controller, gesture)
        if commit is None:
            logger.info("No change")
            continue
        log_layout(controller, track)

    logger.info("✅ Completed layout for {}", day_key(day))


if __name__ == '__main__':
    main()
