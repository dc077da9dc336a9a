"""
playdeck - Headless Entry Point

Plays the given files or URLs through the playback core, one after the
other, until the queue is exhausted.
"""

import argparse
import logging
import sys
import time
from typing import List, Optional

from playdeck.core.event_bus import EventType
from playdeck.models.track import Track
from playdeck.services.transport_controller import ControllerState

logger = logging.getLogger("playdeck")


def setup_logging(debug: bool = False) -> None:
    """Send playdeck's log records to stderr."""
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    if logger.handlers:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="playdeck",
        description="Play local media files or URLs in order",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  playdeck song1.mp3 song2.flac           # Play in order
  playdeck --shuffle --repeat *.mp3       # Shuffle and loop the list
  playdeck --backend vlc clip.mp4         # Use the VLC backend
        """
    )

    parser.add_argument("files", nargs="+", help="Files, file:// or http(s):// URLs")
    parser.add_argument("--shuffle", action="store_true", help="Shuffle the queue")
    parser.add_argument("--repeat", action="store_true", help="Wrap around after the last item")
    parser.add_argument(
        "--no-auto-next",
        action="store_true",
        help="Stop after the first item instead of advancing"
    )
    parser.add_argument("--volume", type=float, help="Volume between 0.0 and 1.0")
    parser.add_argument("--backend", choices=["pygame", "vlc"], help="Output backend (default from config)")
    parser.add_argument("--config", "-c", help="Path to a YAML config file")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    """Application entry point"""
    args = parse_args(argv)
    setup_logging(args.debug)

    from playdeck.app.container_factory import AppContainerFactory

    try:
        container = AppContainerFactory.create(config_path=args.config, backend=args.backend)
    except RuntimeError as e:
        logger.error("%s", e)
        return 2

    controller = container.controller
    facade = container.facade

    facade.subscribe(EventType.TRACK_STARTED, lambda track: logger.info("Now playing: %s", track.display_name))
    facade.subscribe(EventType.ERROR_OCCURRED, lambda error: logger.warning("Skipped: %s", error))

    if args.volume is not None:
        controller.set_volume(args.volume)
    if args.no_auto_next:
        container.config.set("playback.auto_play_next", False)
    controller.set_shuffle(args.shuffle)
    controller.set_repeat(args.repeat)

    tracks = [Track.from_path(path) for path in args.files]
    interval = max(0.05, float(container.config.get("playback.progress_interval_ms", 250)) / 1000.0)
    failures = 0
    exit_code = 0

    try:
        controller.play_queue(tracks)
        while True:
            state = controller.state
            if state == ControllerState.ERROR:
                failures += 1
                if failures >= len(tracks):
                    logger.error("Nothing in the queue could be played")
                    exit_code = 1
                    break
                controller.next()
                continue
            if state == ControllerState.IDLE:
                break
            if state == ControllerState.PLAYING:
                failures = 0

            controller.poll()
            time.sleep(interval)
    except KeyboardInterrupt:
        logger.info("Interrupted")
    finally:
        container.cleanup()

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
