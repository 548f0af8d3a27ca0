import os
from pathlib import Path
from typing import Optional
from pydantic import BaseModel, Field, ValidationError
from dotenv import load_dotenv
import logging

from ..audio.analysis.types import AnalysisConfig
from ..audio.playback.types import PlaybackSettings

logger = logging.getLogger(__name__)

ENV_PREFIX = "PHRASE_LOOP_"


class PhraseLoopConfig(BaseModel):
    silence_amplitude: float = Field(default=0.01, gt=0, lt=1, description="RMS amplitude below which a window counts as silence")
    min_silence_duration: float = Field(default=1.0, gt=0, description="Seconds of silence needed to close a segment")
    min_segment_duration: float = Field(default=3.0, gt=0, description="Shortest segment emitted, in seconds")
    max_segment_duration: float = Field(default=15.0, gt=0, description="Longest segment before it is split, in seconds")
    analysis_window_s: float = Field(default=0.1, ge=0.02, le=0.1, description="Energy analysis window in seconds")
    playback_speed: float = Field(default=1.0, gt=0, le=4.0, description="Default playback rate")
    loop_target: int = Field(default=1, ge=1, description="Passes per segment")
    continuous_mode: bool = Field(default=False, description="When True, advance to the next segment after the loop target")
    loop_restart_delay_s: float = Field(default=0.2, ge=0, description="Pause between loops of the same segment")
    advance_delay_s: float = Field(default=0.5, ge=0, description="Pause before auto-advancing to the next segment")
    backup_epsilon_s: float = Field(default=0.1, ge=0, description="Slack added to the backup end-of-segment timer")
    output_device: Optional[int] = Field(default=None, description="sounddevice output device index")
    log_level: str = Field(default="INFO", description="Logging level")

    def analysis_config(self) -> AnalysisConfig:
        return AnalysisConfig(
            silence_amplitude=self.silence_amplitude,
            min_silence_duration=self.min_silence_duration,
            min_segment_duration=self.min_segment_duration,
            max_segment_duration=self.max_segment_duration,
            window_s=self.analysis_window_s,
        )

    def playback_settings(self) -> PlaybackSettings:
        return PlaybackSettings(
            playback_speed=self.playback_speed,
            loop_target=self.loop_target,
            continuous_mode=self.continuous_mode,
        )


def _env(name: str, default: str) -> str:
    return os.getenv(ENV_PREFIX + name, default)


def load_config(config_path: Optional[Path] = None) -> PhraseLoopConfig:
    if config_path is None:
        config_path = Path(".env")

    if config_path.exists():
        load_dotenv(config_path)
        logger.info(f"Loaded environment variables from {config_path}")
    else:
        logger.warning(f"Config file {config_path} not found, using environment variables only")

    try:
        output_device = _env("OUTPUT_DEVICE", "")
        config = PhraseLoopConfig(
            silence_amplitude=float(_env("SILENCE_AMPLITUDE", "0.01")),
            min_silence_duration=float(_env("MIN_SILENCE_DURATION", "1.0")),
            min_segment_duration=float(_env("MIN_SEGMENT_DURATION", "3.0")),
            max_segment_duration=float(_env("MAX_SEGMENT_DURATION", "15.0")),
            analysis_window_s=float(_env("ANALYSIS_WINDOW_S", "0.1")),
            playback_speed=float(_env("PLAYBACK_SPEED", "1.0")),
            loop_target=int(_env("LOOP_TARGET", "1")),
            continuous_mode=_env("CONTINUOUS_MODE", "false").lower() in ("true", "1", "yes"),
            loop_restart_delay_s=float(_env("LOOP_RESTART_DELAY_S", "0.2")),
            advance_delay_s=float(_env("ADVANCE_DELAY_S", "0.5")),
            backup_epsilon_s=float(_env("BACKUP_EPSILON_S", "0.1")),
            output_device=int(output_device) if output_device else None,
            log_level=_env("LOG_LEVEL", "INFO"),
        )

        if config.min_segment_duration >= config.max_segment_duration:
            raise ValueError("MIN_SEGMENT_DURATION must be smaller than MAX_SEGMENT_DURATION")

        return config

    except (ValidationError, ValueError) as e:
        logger.error(f"Failed to load configuration: {e}")
        raise


def create_example_env_file(path: Path = Path(".env.example")):
    example_content = """# Segment detection
# RMS amplitude (0-1) below which audio counts as silence
PHRASE_LOOP_SILENCE_AMPLITUDE=0.01
# Seconds of silence that separate two segments
PHRASE_LOOP_MIN_SILENCE_DURATION=1.0
# Segments shorter than this are merged into the next one
PHRASE_LOOP_MIN_SEGMENT_DURATION=3.0
# Segments longer than this are split at a quiet point
PHRASE_LOOP_MAX_SEGMENT_DURATION=15.0
# Energy analysis window in seconds (0.02-0.1)
PHRASE_LOOP_ANALYSIS_WINDOW_S=0.1

# Playback
PHRASE_LOOP_PLAYBACK_SPEED=1.0
PHRASE_LOOP_LOOP_TARGET=1
# Advance to the next segment after the loop target (true/false)
PHRASE_LOOP_CONTINUOUS_MODE=false
PHRASE_LOOP_LOOP_RESTART_DELAY_S=0.2
PHRASE_LOOP_ADVANCE_DELAY_S=0.5
PHRASE_LOOP_BACKUP_EPSILON_S=0.1

# sounddevice output device index (empty = system default)
PHRASE_LOOP_OUTPUT_DEVICE=

# Logging level
PHRASE_LOOP_LOG_LEVEL=INFO
"""

    with open(path, "w") as f:
        f.write(example_content)

    logger.info(f"Created example environment file at {path}")


def setup_logging(log_level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )
