"""Application configuration constants."""

from __future__ import annotations

APP_NAME = "MagnetCut"
APP_VERSION = "0.1.0"
ORG_NAME = "MagnetCut"

# Frame rates the editor accepts
SUPPORTED_FPS = (24, 30, 60)
DEFAULT_FPS = 30

ASPECT_RATIOS = ("9:16", "1:1", "16:9")
DEFAULT_ASPECT = "9:16"
RESOLUTIONS = ("1080x1920", "720x1280")
DEFAULT_RESOLUTION = "1080x1920"

# Magnetic linking (pixels, converted to ms through the current zoom)
SNAP_PX = 8      # snaps & links
UNLINK_PX = 14   # a wider gap is needed to break a link

# Zoom (pixels per second)
DEFAULT_PX_PER_SEC = 100.0
MIN_PX_PER_SEC = 5.0
MAX_PX_PER_SEC = 1000.0
ZOOM_STEP = 1.2

# Editing
MIN_CLIP_MS = 100
DEFAULT_IMAGE_DURATION_MS = 3000
DEFAULT_VIDEO_DURATION_MS = 5000
DEFAULT_AUDIO_DURATION_MS = 30000

# Timeline length = last clip end + padding, never shorter than the floor
DURATION_PADDING_MS = 2000
MIN_DURATION_MS = 1000

# Undo
HISTORY_CAPACITY = 100

# Transient "just snapped" marker lifetime (UI feedback)
SNAP_MARKER_MS = 400
