import asyncio
import argparse
import dataclasses
import logging
from pathlib import Path
from typing import Optional

from .audio.analysis import AudioLoadError, SegmentList, detect_segments, load_wav
from .audio.playback import SegmentScheduler
from .config.settings import PhraseLoopConfig, create_example_env_file, load_config, setup_logging
from .core.events import AllStopped, LoopCompleted, PlaybackError, SchedulerEvent, SegmentEnded, SegmentStarted
from .practice import PracticeSession

logger = logging.getLogger(__name__)


def format_time(seconds: float) -> str:
    mins = int(seconds // 60)
    secs = seconds - mins * 60
    return f"{mins}:{secs:05.2f}"


def print_segments(segments: SegmentList) -> None:
    print(f"{len(segments)} segment(s):")
    for seg in segments:
        print(f"  #{seg.index + 1:<3} {format_time(seg.start)} - {format_time(seg.end)}  ({seg.duration:.2f}s)")


def describe_event(event: SchedulerEvent) -> str:
    if isinstance(event, SegmentStarted):
        return f"> segment #{event.index + 1}"
    if isinstance(event, LoopCompleted):
        return f"  loop {event.loops_completed} of segment #{event.index + 1} done"
    if isinstance(event, SegmentEnded):
        return f"  segment #{event.index + 1} finished"
    if isinstance(event, AllStopped):
        return "  stopped"
    if isinstance(event, PlaybackError):
        return f"! playback error: {event.reason}"
    return repr(event)


async def play_file(
    config: PhraseLoopConfig,
    path: Path,
    segment: int = 1,
    speed: Optional[float] = None,
    loops: Optional[int] = None,
    infinite: bool = False,
    continuous: Optional[bool] = None,
) -> PracticeSession:
    """Analyse a WAV file and play it segment by segment until playback goes idle."""
    # Imported here so `analyze` works on hosts without PortAudio.
    from .audio.playback.device import SoundDeviceMediaHandle

    source = load_wav(path)
    segments = detect_segments(source, config.analysis_config())
    print_segments(segments)

    settings = config.playback_settings()
    overrides = {}
    if loops is not None:
        overrides["loop_target"] = loops
    if continuous is not None:
        overrides["continuous_mode"] = continuous
    if overrides:
        settings = dataclasses.replace(settings, **overrides)

    media = SoundDeviceMediaHandle(source, device=config.output_device)
    scheduler = SegmentScheduler(
        media,
        segments,
        settings,
        loop_restart_delay_s=config.loop_restart_delay_s,
        advance_delay_s=config.advance_delay_s,
        backup_epsilon_s=config.backup_epsilon_s,
    )
    session = PracticeSession(len(segments), auto_complete=True)
    session.attach(scheduler)

    finished = asyncio.Event()

    def on_event(event: SchedulerEvent) -> None:
        print(describe_event(event))
        if isinstance(event, (SegmentEnded, AllStopped, PlaybackError)):
            finished.set()

    scheduler.subscribe(on_event)
    try:
        scheduler.play(segment - 1, speed=speed, infinite_loop=infinite)
        if scheduler.state.is_idle:
            print(f"No segment #{segment}")
            return session
        await finished.wait()
    finally:
        scheduler.close()
        media.close()
    return session


async def main(argv: Optional[list[str]] = None):
    parser = argparse.ArgumentParser(description="Segment-by-segment practice playback")
    parser.add_argument("--config", type=str, help="Path to config file", default=".env")
    parser.add_argument("--create-config", action="store_true", help="Create example config file")
    sub = parser.add_subparsers(dest="command")

    analyze = sub.add_parser("analyze", help="Detect and list segments of a WAV file")
    analyze.add_argument("file", type=Path)

    play = sub.add_parser("play", help="Play segments of a WAV file")
    play.add_argument("file", type=Path)
    play.add_argument("--segment", type=int, default=1, help="Segment number to start from (1-based)")
    play.add_argument("--speed", type=float, default=None, help="Playback rate")
    loop_group = play.add_mutually_exclusive_group()
    loop_group.add_argument("--loops", type=int, default=None, help="Passes per segment")
    loop_group.add_argument("--infinite", action="store_true", help="Loop until Ctrl-C")
    play.add_argument("--continuous", action="store_true", default=None, help="Advance to the next segment")

    args = parser.parse_args(argv)

    if args.create_config:
        create_example_env_file()
        print("Example configuration file created at .env.example")
        print("Copy it to .env and adjust the values.")
        return

    if args.command is None:
        parser.print_help()
        return

    try:
        config = load_config(Path(args.config) if args.config else None)
        setup_logging(config.log_level)

        if args.command == "analyze":
            print_segments(detect_segments(load_wav(args.file), config.analysis_config()))
            return

        session = await play_file(
            config,
            args.file,
            segment=args.segment,
            speed=args.speed,
            loops=args.loops,
            infinite=args.infinite,
            continuous=args.continuous,
        )
        practiced = sum(1 for r in session.records if r.attempts)
        print(f"Practiced {practiced} segment(s), completed {session.completed_count}")

    except AudioLoadError as e:
        print(f"Audio error: {e}")
    except ValueError as e:
        print(f"Configuration error: {e}")
        print("Please check your configuration file.")
    except KeyboardInterrupt:
        print("\nGoodbye!")


def run() -> None:
    """Console script entry point."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nGoodbye!")


if __name__ == "__main__":
    run()
