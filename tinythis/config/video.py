"""
Configuration settings related to video processing.

This module defines the accepted input extensions, the output naming scheme,
and the codec parameters behind the three presets.
"""

# --- Input Settings ---
# Compared case-insensitively against the file suffix.
VIDEO_EXTENSIONS = (
    ".mp4", ".mov", ".avi", ".webm", ".ogv",
    ".asx", ".mpeg", ".m4v", ".wmv", ".mpg",
)

# --- Output Settings ---
OUTPUT_TAG = "tinythis"
OUTPUT_EXTENSION = ".mp4"
# Upper bound for the numbered collision suffix (`.2`, `.3`, ...).
MAX_OUTPUT_CANDIDATES = 9999

# --- Encoder Settings ---
CPU_VIDEO_ENCODER = "libx264"
GPU_VIDEO_ENCODER = "h264_nvenc"
AUDIO_ENCODER = "aac"
PIXEL_FORMAT = "yuv420p"

# x264 speed preset and CRF per tier.
CPU_PRESET_PARAMS = {
    "quality": ("slow", 18),
    "balanced": ("medium", 23),
    "speed": ("veryfast", 28),
}

# NVENC speed preset (p1 fastest .. p7 slowest) and constant quality per tier.
GPU_PRESET_PARAMS = {
    "quality": ("p7", 19),
    "balanced": ("p5", 24),
    "speed": ("p2", 29),
}

AUDIO_BITRATES = {
    "quality": "160k",
    "balanced": "128k",
    "speed": "96k",
}

PRESET_DESCRIPTIONS = {
    "quality": "best quality, slower processing",
    "balanced": "good quality, moderate processing",
    "speed": "lower quality, faster processing",
}
