"""
Timeline Engine Configuration
"""
from pathlib import Path

# Project file format
PROJECT_VERSION = "1.0.0"  # Stamped on every load/save
DEFAULT_PROJECT_NAME = "Untitled Project"

# Project settings defaults
VIDEO_WIDTH = 1920
VIDEO_HEIGHT = 1080
VIDEO_FPS = 30
BACKGROUND_COLOR = "#000000"

# Default tracks created for a fresh timeline
DEFAULT_TRACKS = [
    {"id": "video-track", "name": "Video Track", "type": "video"},
    {"id": "audio-track", "name": "Audio Track", "type": "audio"},
]

# Clip editing
DEFAULT_CLIP_DURATION = 5.0  # Stills dropped without a duration
MIN_CLIP_DURATION = 0.1

# Keyframes
KEYFRAME_TIME_TOLERANCE = 0.001  # Same-time replacement window
VOLUME_KEYFRAME_TIME_TOLERANCE = 0.01
KEYFRAME_SEARCH_TOLERANCE = 0.05  # Hit-testing an existing keyframe

# Filters (engine range; renderer receives value / 100)
FILTER_MIN = -100.0
FILTER_MAX = 100.0

# History
MAX_HISTORY_SIZE = 100
BATCH_LABEL = "Multiple Changes"

# Autosave
AUTOSAVE_ENABLED = True
AUTOSAVE_INTERVAL_SECONDS = 30.0
AUTOSAVE_MIN_INTERVAL_SECONDS = 5.0  # Rate limit between successive saves
MAX_AUTOSAVES = 5

# Audio defaults
DEFAULT_FADE_DURATION = 0.5
WAVEFORM_SAMPLES_PER_PEAK = 256

# Paths
AUTOSAVE_DIR = Path.home() / ".timeline-engine" / "autosave"
